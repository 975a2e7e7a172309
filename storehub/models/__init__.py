from storehub.models.store import Store, StoreTag
from storehub.models.user import User, UserHeart

__all__ = ["Store", "StoreTag", "User", "UserHeart"]
