"""
api/routes/beers.py -- Beer catalog routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET  /beers                  -- list all beers
  GET  /beers/search?query=    -- full-text search (must be before /beers/{beer_id})
  GET  /beers/{beer_id}        -- beer detail
  POST /beers                  -- create beer from multipart/form-data, optional image file

Auth policy: all routes are public. POST /beers records the session user's id
as owner when the client is logged in, and leaves owner empty otherwise.

Image uploads:
  The form is validated first, then the image (if any) is sent to the image
  host, then the beer is inserted with the hosted URL. Without a configured
  uploader the image is ignored and the default image URL is kept.
  Images are capped at 10 MB.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from api.models import BeerResponse, MessageResponse
from auth.dependencies import get_session_user
from beers.store import BeerStore
from beers.uploader import ImageUploadError
from core.errors import InternalError, NotFoundError, ValidationError

logger = logging.getLogger("brewhouse.api")

router = APIRouter()

_MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10 MB


# ---------------------------------------------------------------------------
# GET /beers -- list
# ---------------------------------------------------------------------------


@router.get("/beers", response_model=list[BeerResponse])
def list_beers(request: Request) -> list[BeerResponse]:
    """Return every beer in the catalog, oldest first."""
    store: BeerStore = request.app.state.beers
    return [BeerResponse.from_beer(b) for b in store.list_beers()]


# ---------------------------------------------------------------------------
# GET /beers/search -- full-text search
# ---------------------------------------------------------------------------


@router.get("/beers/search", response_model=list[BeerResponse])
def search_beers(request: Request, query: str = "") -> list[BeerResponse]:
    """Search name, tagline, brewers_tips and description. A blank query returns []."""
    store: BeerStore = request.app.state.beers
    return [BeerResponse.from_beer(b) for b in store.search(query)]


# ---------------------------------------------------------------------------
# GET /beers/{beer_id} -- detail
# ---------------------------------------------------------------------------


@router.get("/beers/{beer_id}", response_model=BeerResponse, responses={404: {"model": MessageResponse}})
def get_beer(request: Request, beer_id: int) -> BeerResponse:
    store: BeerStore = request.app.state.beers
    beer = store.get_beer(beer_id)
    if beer is None:
        raise NotFoundError("Beer not found.")
    return BeerResponse.from_beer(beer)


# ---------------------------------------------------------------------------
# POST /beers -- create
# ---------------------------------------------------------------------------


@router.post(
    "/beers",
    response_model=BeerResponse,
    responses={400: {"model": MessageResponse}, 500: {"model": MessageResponse}},
)
async def create_beer(
    request: Request,
    name: Optional[str] = Form(default=None),
    tagline: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    first_brewed: Optional[str] = Form(default=None),
    brewers_tips: Optional[str] = Form(default=None),
    attenuation_level: Optional[str] = Form(default=None),
    contributed_by: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: Optional[dict[str, Any]] = Depends(get_session_user),
) -> BeerResponse:
    """Add a beer. Field messages from the catalog rules come back as a 400."""
    store: BeerStore = request.app.state.beers
    fields: dict[str, Any] = {
        "name": name,
        "tagline": tagline,
        "description": description,
        "first_brewed": first_brewed,
        "brewers_tips": brewers_tips,
        "attenuation_level": attenuation_level,
        "contributed_by": contributed_by,
        "owner": user["id"] if user else None,
    }
    await run_in_threadpool(store.validate, fields)

    if image is not None and image.filename:
        fields["image_url"] = await _upload_image(request, image)

    beer = await run_in_threadpool(store.create_beer, fields)
    return BeerResponse.from_beer(beer)


async def _upload_image(request: Request, image: UploadFile) -> Optional[str]:
    uploader = request.app.state.uploader
    if uploader is None:
        logger.warning("Image upload skipped for %s: no image host configured", image.filename)
        return None
    # One byte past the cap is enough to tell an oversized file apart.
    data = await image.read(_MAX_IMAGE_BYTES + 1)
    if len(data) > _MAX_IMAGE_BYTES:
        raise ValidationError.from_fields("beer", {"image": "Images must be 10 MB or smaller."})
    try:
        return await run_in_threadpool(uploader.upload, image.filename, data)
    except ImageUploadError as exc:
        raise InternalError() from exc
