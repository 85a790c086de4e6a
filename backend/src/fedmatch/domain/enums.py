"""Domain enumerations for the FedMatch scoring engine.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class BuildingClass(str, Enum):
    """Commercial building class, best first."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"

    @property
    def ordinal(self) -> int:
        """Position on the class ladder (A+ = 0 ... C = 3)."""
        return list(BuildingClass).index(self)

    @classmethod
    def parse(cls, value) -> "BuildingClass | None":
        """Lenient parse: accepts "a+", "Class B", enum members, or None."""
        if value is None:
            return None
        if isinstance(value, BuildingClass):
            return value
        cleaned = str(value).strip().upper()
        if cleaned.startswith("CLASS"):
            cleaned = cleaned[5:].strip()
        for member in cls:
            if member.value == cleaned:
                return member
        return None


class Grade(str, Enum):
    """Letter grade bands shared by match and presence scores."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class AreaUnit(str, Enum):
    """How the opportunity measures space."""

    USABLE = "usable"
    RENTABLE = "rentable"


class Ownership(str, Enum):
    """Federal property tenure, as reported by the IOLP dataset."""

    OWNED = "owned"
    LEASED = "leased"


class ScoreCategory(str, Enum):
    """Match score categories, in report order."""

    LOCATION = "location"
    SPACE = "space"
    BUILDING = "building"
    TIMELINE = "timeline"
    EXPERIENCE = "experience"


class BuildingFeature(str, Enum):
    """Named building features a requirement can mandate."""

    FIBER = "fiber"
    BACKUP_POWER = "backup_power"
    LOADING_DOCK = "loading_dock"
    SECURITY_24X7 = "security_24x7"
    SECURE_ACCESS = "secure_access"
    SCIF_CAPABLE = "scif_capable"
    DATA_CENTER = "data_center"
    CAFETERIA = "cafeteria"
    FITNESS_CENTER = "fitness_center"
    CONFERENCE_CENTER = "conference_center"


class CacheStatus(str, Enum):
    """Outcome of a score cache operation."""

    HIT = "hit"
    MISS = "miss"
    STORED = "stored"
    ERROR = "error"


class SkipReason(str, Enum):
    """Why a listing was ruled out of a ranking before full scoring."""

    STATE_MISMATCH = "state_mismatch"
    SPACE_TOO_SMALL = "space_too_small"
