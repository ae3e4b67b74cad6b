from fastapi import APIRouter

from . import entitlements, learning_paths, payments, subscriptions, usage

router = APIRouter(prefix="/v1")
router.include_router(entitlements.router)
router.include_router(learning_paths.router)
router.include_router(usage.router)
router.include_router(subscriptions.router)
# payment provider callbacks, signed with HMAC instead of the API key
router.include_router(payments.router)
