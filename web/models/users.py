"""User administration request models."""

from medportal.core.enums import AccountStatus
from web.models.common import CamelModel


class UpdateUserStatusRequest(CamelModel):
    """Admin status change; ``deleted`` is reserved for the DELETE route."""

    status: AccountStatus
