"""
Result types returned by every portal authentication operation.

Operations never raise to their callers: they return either ``Ok`` or
``Err``, and ``to_dict()`` gives the JSON shape served to the portal pages.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


class ErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_AUTHENTICATED = "not_authenticated"
    SESSION_EXPIRED = "session_expired"
    INVALID_SESSION = "invalid_session"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class GymInfo:
    id: str
    name: str
    logo_url: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'logo_url': self.logo_url}


@dataclass(frozen=True)
class PinStatus:
    has_pin: bool
    member_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {'hasPin': self.has_pin, 'memberId': self.member_id}


@dataclass(frozen=True)
class MemberSession:
    member_id: str
    gym_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {'memberId': self.member_id, 'gymId': self.gym_id}


@dataclass(frozen=True)
class MemberInfo:
    member_id: str
    gym_id: str
    member_name: str
    member_email: str
    gym_name: str
    gym_logo_url: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'memberId': self.member_id,
            'gymId': self.gym_id,
            'memberName': self.member_name,
            'memberEmail': self.member_email,
            'gymName': self.gym_name,
            'gymLogoUrl': self.gym_logo_url,
        }


@dataclass(frozen=True)
class Ok:
    data: Any = None
    message: Optional[str] = None

    success = True

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {'success': True}
        if self.data is not None:
            body['data'] = self.data.to_dict()
        if self.message is not None:
            body['message'] = self.message
        return body


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    error: str

    success = False

    def to_dict(self) -> Dict[str, Any]:
        return {'success': False, 'error': self.error, 'code': self.kind.value}


Result = Union[Ok, Err]
