from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.middlewares")

SECURITY_CONTEXT_ATTR = "security_context"
