"""Deployment modes."""

from enum import Enum


class DeployMode(str, Enum):
    """Strategies for choosing which files to deploy."""

    CHANGED_ONLY = "changedOnly"
    """Files whose local or remote timestamp moved since the last deploy"""

    WORKING_CHANGES = "workingChanges"
    """Files changed in the version-control working tree"""

    STAGED_CHANGES = "stagedChanges"
    """Files staged in version control"""

    ALL = "all"
    """Every file not excluded by ignore rules"""

    @property
    def label(self) -> str:
        """Human-readable name for prompts and logs."""
        return _LABELS[self]

    @property
    def uses_version_control(self) -> bool:
        return self in (DeployMode.WORKING_CHANGES, DeployMode.STAGED_CHANGES)

    @property
    def uses_ignore_rules(self) -> bool:
        return self in (DeployMode.CHANGED_ONLY, DeployMode.ALL)

    @property
    def requires_remote_listing(self) -> bool:
        return self == DeployMode.CHANGED_ONLY

    @classmethod
    def from_string(cls, value: str) -> "DeployMode":
        """Parse a mode from its value, abbreviation or label.

        Args:
            value: e.g. ``changedOnly``, ``changed``, ``co`` or ``Changes Only``

        Raises:
            ValueError: If the value names no mode
        """
        normalized = value.strip().lower().replace(" ", "").replace("-", "")
        for mode in cls:
            if normalized in (
                mode.value.lower(),
                mode.label.lower().replace(" ", ""),
            ):
                return mode
        if normalized in _ABBREVIATIONS:
            return _ABBREVIATIONS[normalized]
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid deploy mode '{value}'. Valid modes: {valid}")


_LABELS = {
    DeployMode.CHANGED_ONLY: "Changes Only",
    DeployMode.WORKING_CHANGES: "Working Changes",
    DeployMode.STAGED_CHANGES: "Staged Changes",
    DeployMode.ALL: "All",
}

_ABBREVIATIONS = {
    "changed": DeployMode.CHANGED_ONLY,
    "co": DeployMode.CHANGED_ONLY,
    "working": DeployMode.WORKING_CHANGES,
    "wc": DeployMode.WORKING_CHANGES,
    "staged": DeployMode.STAGED_CHANGES,
    "sc": DeployMode.STAGED_CHANGES,
}
