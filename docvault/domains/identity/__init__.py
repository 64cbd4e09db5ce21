from docvault.domains.identity.entities import PublicIdentity, Session, SigningState
from docvault.domains.identity.schemas import UserCreate, UserLogin, IdentityResponse, Token
from docvault.domains.identity.services import IdentityService
from docvault.domains.identity.sessions import SessionManager

__all__ = [
    "PublicIdentity", "Session", "SigningState",
    "UserCreate", "UserLogin", "IdentityResponse", "Token",
    "IdentityService", "SessionManager"
]
