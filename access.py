from typing import Optional

from auth import CallerIdentity
from errors import Unauthorized
from schemas import Form


def authorize(form: Form, caller: Optional[CallerIdentity]) -> bool:
    """Only the owner of a form may mutate it or read its submissions."""
    return caller is not None and caller.user_id == form.owner_id


def require_owner(form: Form, caller: Optional[CallerIdentity]) -> None:
    # Called after the form lookup: an existing form answers 403 to non-owners, never 404.
    if not authorize(form, caller):
        raise Unauthorized()
