import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from subplanner.dependencies import get_store
from subplanner.schemas.subscription import (
    ImportMode,
    ImportRequest,
    ImportResponse,
    ReorderRequest,
    Subscription,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionSummary,
    SubscriptionUpdate,
)
from subplanner.services.csv_codec import decode_subscriptions, encode_subscriptions, export_filename
from subplanner.services.store import SubscriptionStore
from subplanner.services.summary import calculate_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _to_response(subscriptions: list[Subscription]) -> list[SubscriptionResponse]:
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Subscription not found",
    )


@router.get("", response_model=list[SubscriptionResponse])
async def list_subscriptions(store: SubscriptionStore = Depends(get_store)):
    """List all subscriptions in display order."""
    return _to_response(store.list_all())


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    subscription_data: SubscriptionCreate,
    store: SubscriptionStore = Depends(get_store),
):
    """Create a new subscription at the end of the list."""
    return SubscriptionResponse.model_validate(store.add(subscription_data))


@router.get("/summary", response_model=SubscriptionSummary)
async def get_summary(store: SubscriptionStore = Depends(get_store)):
    """Monthly and yearly equivalent cost of the active subscriptions."""
    return calculate_summary(store.list_all())


@router.get("/export")
async def export_subscriptions(store: SubscriptionStore = Depends(get_store)):
    """Download the collection as CSV."""
    content = encode_subscriptions(store.list_all())
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_subscriptions(
    import_data: ImportRequest,
    store: SubscriptionStore = Depends(get_store),
):
    """Import subscriptions from CSV text.

    Rows that fail validation are skipped and reported in ``errors``.
    ``replace`` discards the current collection, ``append`` adds to it.
    When no row is valid the collection is left untouched.
    """
    result = decode_subscriptions(import_data.content)

    if not result.subscriptions:
        logger.info("Import produced no valid rows, collection unchanged")
        total_count = len(store.list_all())
    elif import_data.mode == ImportMode.REPLACE:
        total_count = len(store.replace_all(result.subscriptions))
    else:
        total_count = len(store.append_all(result.subscriptions))

    return ImportResponse(
        mode=import_data.mode,
        imported_count=len(result.subscriptions),
        total_count=total_count,
        errors=[str(error) for error in result.errors],
    )


@router.post("/reorder", response_model=list[SubscriptionResponse])
async def reorder_subscriptions(
    reorder_data: ReorderRequest,
    store: SubscriptionStore = Depends(get_store),
):
    """Set the display order to the sequence of ids given."""
    return _to_response(store.reorder(reorder_data.ids))


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: str,
    store: SubscriptionStore = Depends(get_store),
):
    """Get a single subscription by ID."""
    subscription = store.get(subscription_id)
    if not subscription:
        raise _not_found()
    return SubscriptionResponse.model_validate(subscription)


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: str,
    subscription_data: SubscriptionUpdate,
    store: SubscriptionStore = Depends(get_store),
):
    """Replace a subscription's fields.

    ``order`` and ``is_active`` keep their current values when omitted.
    """
    existing = store.get(subscription_id)
    if not existing:
        raise _not_found()

    update_data = subscription_data.model_dump(exclude_none=True)
    for field in ("category", "color"):
        update_data[field] = getattr(subscription_data, field)

    updated = store.update(existing.model_copy(update=update_data))
    if not updated:
        raise _not_found()
    return SubscriptionResponse.model_validate(updated)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: str,
    store: SubscriptionStore = Depends(get_store),
):
    """Delete a subscription. Deleting an unknown id is not an error."""
    store.delete(subscription_id)
    return None


@router.post("/{subscription_id}/toggle-active", response_model=SubscriptionResponse)
async def toggle_subscription_active(
    subscription_id: str,
    store: SubscriptionStore = Depends(get_store),
):
    """Pause or resume a subscription. Paused ones are left out of the totals."""
    subscription = store.toggle_active(subscription_id)
    if not subscription:
        raise _not_found()
    return SubscriptionResponse.model_validate(subscription)
