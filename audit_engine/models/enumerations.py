from enum import Enum
from typing import Optional


class SelectedChoice(str, Enum):
    YES = "Yes"
    PARTIALLY = "Partially"
    NO = "No"
    NA = "NA"                 # Not Applicable, excluded from the ratio
    UNANSWERED = ""

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SelectedChoice":
        """Map a stored choice string onto the enum, ignoring case and padding."""
        if raw is None:
            return cls.UNANSWERED
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().lower()
        if not key:
            return cls.UNANSWERED
        for choice in cls:
            if choice.value.lower() == key:
                return choice
        if key in ("n/a", "not applicable"):
            return cls.NA
        raise ValueError(f"Unknown response choice: {raw!r}")

    @property
    def is_scored(self) -> bool:
        return self not in (SelectedChoice.NA, SelectedChoice.UNANSWERED)


class AuditStatus(str, Enum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    SUBMITTED = "Submitted"   # handed in, not yet scored

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["AuditStatus"]:
        """Match a stored status ignoring case and padding; None when unrecognised."""
        key = str(raw or "").strip().lower()
        for status in cls:
            if status.value.lower() == key:
                return status
        return None


class ExclusionAction(str, Enum):
    EXCLUDED = "Excluded"
    INCLUDED = "Included"


class SettingType(str, Enum):
    OVERALL = "Overall"
    SECTION = "Section"


class Classification(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
