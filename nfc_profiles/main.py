import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import Response

from .columns import ColumnSchema, analytics_schema, claimed_pins_schema, pins_dashboard_schema
from .config import Settings, settings as default_settings
from .export import export_csv
from .extract import coerce_timestamp
from .logging_config import configure_logging
from .models import (
    ClaimRequest,
    HealthResponse,
    ImportReport,
    PinStatus,
    ProfileRecord,
    ProfileUpdate,
    StatsResponse,
    VcardPlatform,
)
from .normalize import import_pins
from .rules import PROFILE_LINKS, VCARD_MEDIA_TYPE
from .store import InMemoryProfileStore, ProfileStore
from .vcard import build_vcard, normalize_url

logger = logging.getLogger(__name__)


def get_store(request: Request) -> ProfileStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


class AttachmentDelivery:
    """Delivers an export as a downloadable HTTP response."""

    def __init__(self):
        self.response: Optional[Response] = None

    def __call__(self, payload: bytes, media_type: str, filename: str) -> None:
        self.response = Response(
            content=payload,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )


def _download(records: List[ProfileRecord], schema: ColumnSchema, filename: str) -> Response:
    delivery = AttachmentDelivery()
    export_csv(records, schema, filename, delivery)
    return delivery.response


def _by_last_updated(records: List[ProfileRecord]) -> List[ProfileRecord]:
    def key(record: ProfileRecord):
        dt = coerce_timestamp(record.last_updated)
        return (dt is None, -dt.timestamp() if dt else 0.0)

    return sorted(records, key=key)


def _filter_status(records: List[ProfileRecord], status: Optional[PinStatus]) -> List[ProfileRecord]:
    if status is None:
        return records
    want_claimed = status == PinStatus.claimed
    return [r for r in records if r.is_claimed == want_claimed]


def _load_claimed(store: ProfileStore, code: str) -> ProfileRecord:
    record = store.get(code)
    if record is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    if not record.is_claimed:
        raise HTTPException(status_code=404, detail="Profile has not been claimed")
    return record


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

admin = APIRouter()


@admin.get("/stats", response_model=StatsResponse)
def stats(store: ProfileStore = Depends(get_store)):
    profiles = store.list_profiles()
    claimed = sum(1 for p in profiles if p.is_claimed)
    return StatsResponse(total=len(profiles), claimed=claimed, unclaimed=len(profiles) - claimed)


@admin.get("/pins")
def list_pins(
    status: Optional[PinStatus] = None,
    store: ProfileStore = Depends(get_store),
):
    records = _by_last_updated(_filter_status(store.list_profiles(), status))
    return [r.to_document() for r in records]


@admin.get("/exports/claimed-pins.csv")
def export_claimed_pins(store: ProfileStore = Depends(get_store)):
    return _download(store.list_profiles(), claimed_pins_schema(), "claimed_pins.csv")


@admin.get("/exports/analytics.csv")
def export_analytics(
    store: ProfileStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    return _download(
        store.list_profiles(), analytics_schema(cfg.TIMESTAMP_FORMAT), "analytics_export.csv"
    )


@admin.get("/exports/pins/{status}.csv")
def export_pins(
    status: PinStatus,
    store: ProfileStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    records = _by_last_updated(_filter_status(store.list_profiles(), status))
    return _download(
        records, pins_dashboard_schema(cfg.TIMESTAMP_FORMAT), f"{status.value}_pins.csv"
    )


@admin.post("/batch-generate", response_model=ImportReport)
async def batch_generate(
    file: UploadFile = File(...),
    store: ProfileStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read()
    if len(raw) > cfg.UPLOAD_MAX_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"Max file size is {cfg.UPLOAD_MAX_MB} MB")

    return import_pins(raw, store)


# ---------------------------------------------------------------------------
# Public profile
# ---------------------------------------------------------------------------

public = APIRouter()


@public.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@public.get("/profiles/{code}", name="get_profile")
def get_profile(code: str, store: ProfileStore = Depends(get_store)):
    record = _load_claimed(store, code)

    try:
        store.merge(code, {"viewedAt": datetime.now(timezone.utc)})
        store.increment(code, "views")
    except Exception as e:
        logger.warning("View tracking failed for %s: %s", code, e)

    return record.to_document()


def _ensure_owner(record: Optional[ProfileRecord], uid: str) -> None:
    if record is not None and record.uid and record.uid != uid:
        raise HTTPException(
            status_code=409, detail="This pin is already owned by another account"
        )


@public.post("/profiles/{code}/claim")
def claim_profile(
    code: str,
    body: ClaimRequest,
    store: ProfileStore = Depends(get_store),
):
    """Attach `uid` to the pin, creating the document when the code is new."""
    record = store.get(code)
    _ensure_owner(record, body.uid)

    now = datetime.now(timezone.utc)
    claimed_at = record.claimed_at if record is not None and record.claimed_at else now
    saved = store.merge(
        code,
        {"uid": body.uid, "claimed": True, "claimedAt": claimed_at, "lastUpdated": now},
    )
    logger.info("Pin %s claimed by %s", code, body.uid)
    return saved.to_document()


@public.put("/profiles/{code}")
def save_profile(
    code: str,
    body: ProfileUpdate,
    store: ProfileStore = Depends(get_store),
):
    """Save the profile form; the saving `uid` becomes (or must be) the owner."""
    record = store.get(code)
    _ensure_owner(record, body.uid)

    fields = body.model_dump(by_alias=True, exclude_none=True)
    for key in PROFILE_LINKS:
        if key in fields:
            fields[key] = normalize_url(fields[key])

    now = datetime.now(timezone.utc)
    fields["claimed"] = True
    fields["claimedAt"] = record.claimed_at if record is not None and record.claimed_at else now
    fields["lastUpdated"] = now

    return store.merge(code, fields).to_document()


@public.get("/profiles/{code}/vcard")
def download_vcard(
    code: str,
    request: Request,
    platform: VcardPlatform = VcardPlatform.ios,
    store: ProfileStore = Depends(get_store),
):
    record = _load_claimed(store, code)
    card = build_vcard(record, str(request.url_for("get_profile", code=code)))

    try:
        store.increment(code, "downloads")
    except Exception as e:
        logger.warning("Download tracking failed for %s: %s", code, e)

    return Response(
        content=card.encode("utf-8"),
        media_type=VCARD_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{code}-{platform.value}.vcf"'
        },
    )


def create_app(
    store: Optional[ProfileStore] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    cfg = app_settings or default_settings
    configure_logging(cfg.LOG_LEVEL)

    app = FastAPI(
        title=cfg.PROJECT_NAME,
        description="NFC pin profiles with admin CSV exports",
        version=cfg.VERSION,
    )
    app.state.store = store if store is not None else InMemoryProfileStore()
    app.state.settings = cfg

    app.include_router(public)
    app.include_router(admin, prefix=cfg.ADMIN_PREFIX, tags=["admin"])
    return app


app = create_app()
