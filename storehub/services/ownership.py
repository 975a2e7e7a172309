import uuid

from storehub.exceptions import AuthorizationError
from storehub.models.store import Store


def confirm_owner(store: Store, requester_id: uuid.UUID) -> None:
    """Raise AuthorizationError unless `requester_id` is the store's author."""
    if store.author_id != requester_id:
        raise AuthorizationError(
            message="You must own a store in order to edit it!",
            context={"store_id": str(store.id), "requester_id": str(requester_id)},
        )
