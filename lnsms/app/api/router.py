"""
API Router.

Aggregates all endpoints. The public paths are unversioned because the
claim frontend calls them directly.
"""

from fastapi import APIRouter
from lnsms.app.api.endpoints import relay, ops

router = APIRouter()

# Payer and recipient endpoints
router.include_router(relay.router)

# Operator endpoints
router.include_router(ops.router)
