"""
StoreHub Backend: Store Page Routes
====================================

What:  Server-rendered pages: store lists, detail, tags, map, hearts, and
       the add/edit form with its two POST targets.
How:   Each handler runs its steps in order and returns either a rendered
       view or a 303 redirect carrying flash messages:

    POST /add, POST /add/{id}:
        UploadFilter.accept → ImageResizer.resize → repository write → redirect

    Errors are not caught here. ValidationError and AuthorizationError are
    turned into an error flash plus a redirect back by the handlers in
    main.py; NotFoundError becomes the 404 view.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse, Response

from storehub.dependencies import (
    get_current_user,
    get_flashes,
    get_image_resizer,
    get_renderer,
    get_store_repository,
    get_upload_filter,
)
from storehub.models.user import User
from storehub.schemas.store import StoreDetailResponse, StoreResponse
from storehub.services.ownership import confirm_owner
from storehub.services.store_repository import StoreRepository
from storehub.services.upload_service import ImageResizer, UploadFilter
from storehub.views import FlashMessenger, ViewRenderer, redirect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stores"])


def _submitted(**fields: Any) -> Dict[str, Any]:
    """Form values that were actually sent (None means the field was absent)."""
    return {key: value for key, value in fields.items() if value is not None}


async def _store_photo(
    photo: Optional[UploadFile],
    upload_filter: UploadFilter,
    resizer: ImageResizer,
) -> Optional[str]:
    """Filter then resize the photo field; None when no file was attached."""
    accepted = await upload_filter.accept(photo)
    return await resizer.resize(accepted)


@router.get("/", summary="List all stores")
@router.get("/stores", summary="List all stores")
async def get_stores(
    request: Request,
    stores: StoreRepository = Depends(get_store_repository),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    result = await stores.list_all()
    return renderer.render(
        request,
        "stores",
        {"title": "Stores", "stores": [StoreResponse.model_validate(s) for s in result]},
    )


@router.get("/store/{slug}", summary="Store detail page")
async def get_store_by_slug(
    slug: str,
    request: Request,
    stores: StoreRepository = Depends(get_store_repository),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    store = await stores.get_by_slug(slug)
    return renderer.render(
        request,
        "store",
        {"title": store.name, "store": StoreDetailResponse.model_validate(store)},
    )


@router.get("/add", summary="Empty store form")
async def add_store(
    request: Request,
    user: User = Depends(get_current_user),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    return renderer.render(request, "editStore", {"title": "Add Store"})


@router.get("/tags", summary="Stores grouped by tag")
@router.get("/tags/{tag}", summary="Stores carrying one tag")
async def get_stores_by_tag(
    request: Request,
    tag: Optional[str] = None,
    stores: StoreRepository = Depends(get_store_repository),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    tagged, tags = await stores.list_by_tag(tag)
    return renderer.render(
        request,
        "tag",
        {
            "title": "Tags",
            "tag": tag,
            "tags": tags,
            "stores": [StoreResponse.model_validate(s) for s in tagged],
        },
    )


@router.post("/add", summary="Create a store")
async def create_store(
    request: Request,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    address: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    stores: StoreRepository = Depends(get_store_repository),
    upload_filter: UploadFilter = Depends(get_upload_filter),
    resizer: ImageResizer = Depends(get_image_resizer),
    flashes: FlashMessenger = Depends(get_flashes),
) -> RedirectResponse:
    data = _submitted(
        name=name,
        description=description,
        tags=tags,
        address=address,
        lng=lng,
        lat=lat,
        photo=await _store_photo(photo, upload_filter, resizer),
    )

    store = await stores.create(data, author_id=user.id)

    flashes.flash(
        request, "success", f"Successfully created {store.name}. Care to leave a review?"
    )
    return redirect(request, f"/store/{store.slug}", flashes)


@router.post("/add/{store_id}", summary="Update a store")
async def update_store(
    store_id: uuid.UUID,
    request: Request,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    address: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    stores: StoreRepository = Depends(get_store_repository),
    upload_filter: UploadFilter = Depends(get_upload_filter),
    resizer: ImageResizer = Depends(get_image_resizer),
    flashes: FlashMessenger = Depends(get_flashes),
) -> RedirectResponse:
    # Nothing is written to the upload directory for a store the user cannot edit
    confirm_owner(await stores.get_by_id(store_id), user.id)

    data = _submitted(
        name=name,
        description=description,
        tags=tags,
        address=address,
        lng=lng,
        lat=lat,
        photo=await _store_photo(photo, upload_filter, resizer),
    )

    store = await stores.update(store_id, data, requester_id=user.id)

    flashes.flash(
        request,
        "success",
        f"Successfully updated {store.name}. View it at /store/{store.slug}",
    )
    return redirect(request, f"/stores/{store.id}/edit", flashes)


@router.get("/stores/{store_id}/edit", summary="Edit form (owner only)")
async def edit_store(
    store_id: uuid.UUID,
    request: Request,
    user: User = Depends(get_current_user),
    stores: StoreRepository = Depends(get_store_repository),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    store = await stores.get_by_id(store_id)
    confirm_owner(store, user.id)
    return renderer.render(
        request,
        "editStore",
        {"title": f"Edit {store.name}", "store": StoreResponse.model_validate(store)},
    )


@router.get("/map", summary="Map page")
async def map_page(
    request: Request,
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    return renderer.render(request, "map", {"title": "Map"})


@router.get("/hearts", summary="Stores the current user hearted")
async def get_hearts(
    request: Request,
    user: User = Depends(get_current_user),
    stores: StoreRepository = Depends(get_store_repository),
    renderer: ViewRenderer = Depends(get_renderer),
) -> Response:
    hearted = await stores.list_by_ids(user.hearts)
    return renderer.render(
        request,
        "stores",
        {"title": "Hearted Stores", "stores": [StoreResponse.model_validate(s) for s in hearted]},
    )
