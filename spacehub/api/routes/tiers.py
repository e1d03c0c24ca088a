"""
Read-only tier catalog.
"""

from spacehub.api.routes.crud import create_crud_router
from spacehub.db.repositories import TierRepository
from spacehub.models.schemas import TierResponse
from spacehub.services.crud_service import CrudService

router = create_crud_router(
    service_factory=lambda session: CrudService(TierRepository(session)),
    serialize=TierResponse.from_model,
    response_model=TierResponse,
    operations={"list", "get"},
)
