"""Federation endpoints consumed by the host identity broker."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.federation.api.http.deps import (
    get_federation_provider,
    require_federation_key,
)
from src.federation.core.adapters import ReadOnlyUserAdapter
from src.federation.core.errors import InvalidCredentials
from src.federation.core.services import FederationProvider

router = APIRouter(
    prefix="/federation",
    tags=["federation"],
    dependencies=[Depends(require_federation_key)],
)


class FederatedUser(BaseModel):
    """Read-only user as exposed to the host platform."""

    id: str = Field(description="Namespaced federation id")
    external_id: str
    username: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    enabled: bool
    email_verified: bool
    attributes: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_adapter(cls, user: ReadOnlyUserAdapter) -> "FederatedUser":
        return cls(
            id=user.id,
            external_id=user.external_id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            enabled=user.enabled,
            email_verified=user.email_verified,
            attributes=user.get_attributes(),
        )


class CredentialCheck(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserCount(BaseModel):
    count: int


def _present(user: ReadOnlyUserAdapter | None) -> FederatedUser:
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    with user:
        return FederatedUser.from_adapter(user)


@router.get("/users/count", response_model=UserCount)
def count_users(provider: FederationProvider = Depends(get_federation_provider)) -> UserCount:
    return UserCount(count=provider.get_users_count())


@router.get("/users/by-username/{username}", response_model=FederatedUser)
def get_user_by_username(
    username: str, provider: FederationProvider = Depends(get_federation_provider)
) -> FederatedUser:
    return _present(provider.get_user_by_username(username))


@router.get("/users/{user_id}", response_model=FederatedUser)
def get_user_by_id(
    user_id: str, provider: FederationProvider = Depends(get_federation_provider)
) -> FederatedUser:
    return _present(provider.get_user_by_id(user_id))


@router.get("/users", response_model=list[FederatedUser])
def list_users(
    first: int = Query(default=0, ge=0),
    max_results: int | None = Query(default=None, alias="max", ge=0),
    search: str | None = Query(default=None),
    provider: FederationProvider = Depends(get_federation_provider),
) -> list[FederatedUser]:
    if search:
        users = provider.search_users(search, first=first, max_results=max_results)
    else:
        users = provider.list_users(first=first, max_results=max_results)
    return [_present(user) for user in users]


@router.post("/credentials/verify", response_model=FederatedUser)
def verify_credentials(
    body: CredentialCheck, provider: FederationProvider = Depends(get_federation_provider)
) -> FederatedUser:
    try:
        user = provider.authenticate(body.username, body.password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=401, detail="Invalid username or password") from exc
    return _present(user)
