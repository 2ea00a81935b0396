from app.config import get_settings

settings = get_settings()


async def get_current_user_id() -> str:
    """
    The marketplace has no login; every caller acts as the configured default user.
    Kept as a dependency so routes read the same way a real auth check would.
    """
    return settings.DEFAULT_USER_ID
