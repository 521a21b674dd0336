"""
Status Messages

Every user-visible outcome (validation failure, save success, remote error)
is reported to the client as a {type, text} pair rendered by a shared banner.
"""
from dataclasses import dataclass
from enum import Enum


class StatusMessageType(str, Enum):
    ERROR = 'error'
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'


@dataclass(frozen=True)
class StatusMessage:
    type: StatusMessageType
    text: str

    def to_dict(self) -> dict:
        return {'type': self.type.value, 'text': self.text}

    @classmethod
    def error(cls, text: str) -> 'StatusMessage':
        return cls(StatusMessageType.ERROR, text)

    @classmethod
    def info(cls, text: str) -> 'StatusMessage':
        return cls(StatusMessageType.INFO, text)

    @classmethod
    def success(cls, text: str) -> 'StatusMessage':
        return cls(StatusMessageType.SUCCESS, text)

    @classmethod
    def warning(cls, text: str) -> 'StatusMessage':
        return cls(StatusMessageType.WARNING, text)
