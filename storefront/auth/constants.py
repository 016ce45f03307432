from storefront.config.settings import config_settings
from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.auth")

JWT_HEADER_NAME = "Authorization"
BEARER_PREFIX = "Bearer "

REFRESH_TOKEN_EXPIRE_DAYS = config_settings.REFRESH_TOKEN_EXPIRE_DAYS

GOOGLE_USER_ABOUT = "User created using Google OAuth"
