from __future__ import annotations


class PlannerError(Exception):
    pass


class BackupError(PlannerError):
    """A backup document could not be imported; nothing was changed."""


class BackupParseError(BackupError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(f"Error parsing data file. {detail}".strip())


class InvalidBackupError(BackupError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(f"Invalid data file. {detail}".strip())
