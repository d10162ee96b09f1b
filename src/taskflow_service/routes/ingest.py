"""Push endpoint for items that arrive outside the pollers."""

import logging

from fastapi import APIRouter, Depends

from .. import database
from ..dependencies import current_user_id
from ..models.ingestion import InboundItem, IngestionOutcome
from ..services.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingest"])


@router.post("/ingest", response_model=IngestionOutcome)
def ingest_item(
    item: InboundItem,
    user_id: str = Depends(current_user_id),
) -> IngestionOutcome:
    """
    Run one normalized item through the ingestion pipeline.

    The item is attributed to the caller. If the caller has configured
    filter rules for the item's source, they apply here too.
    """
    item = item.model_copy(update={"user_id": user_id})
    integration = database.get_integration(user_id, item.source)
    rules = integration.filter_instructions if integration else ""
    return IngestionPipeline().process_item(item, rules)
