"""
Publisher registry API endpoints
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import get_firebase_service
from app.models.publisher import Publisher, firestore_publisher_to_model, publisher_doc_id
from app.schemas.common import InsertResponse
from app.schemas.publisher import PublisherCreate
from app.services.firebase_service import DocumentExistsError, FirebaseService
from app.utils.normalize import clean_str, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/publishers", tags=["Publishers"])


def _already_registered(name: str) -> JSONResponse:
    logger.info("Publisher %r already registered, skipping insert", name)
    body = InsertResponse(message="Publisher already exists", inserted=False)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("", response_model=list[Publisher])
async def list_publishers(firebase: FirebaseService = Depends(get_firebase_service)):
    docs, _ = await firebase.query_collection(settings.PUBLISHERS_COLLECTION)
    return [firestore_publisher_to_model(data, doc_id) for doc_id, data in docs]


@router.post("", response_model=InsertResponse, status_code=status.HTTP_201_CREATED)
async def register_publisher(
    payload: PublisherCreate,
    firebase: FirebaseService = Depends(get_firebase_service),
):
    """
    Register a publisher. Names are unique ignoring case and surrounding
    whitespace; registering an existing name is a no-op, not an error.
    """
    display_name = clean_str(payload.name)
    if not isinstance(display_name, str) or not display_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Publisher name is required"
        )
    name = display_name.lower()
    collection = settings.PUBLISHERS_COLLECTION

    if await firebase.find_document(collection, "name", name):
        return _already_registered(name)

    publisher = payload.model_dump(by_alias=True, exclude_none=True)
    publisher["name"] = name
    publisher["displayName"] = display_name
    publisher["createdAt"] = utc_now()

    try:
        inserted_id = await firebase.create_document(
            collection, publisher_doc_id(name), publisher)
    except DocumentExistsError:
        # Lost a race with a concurrent registration of the same name
        return _already_registered(name)

    logger.info("Registered publisher %s", inserted_id)
    return InsertResponse(
        message="Publisher added successfully",
        inserted=True,
        inserted_id=inserted_id,
    )
