from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ..database import get_db
from ..crud import LinkStore
from ..errors import LinkError
from ..schemas import LinkCreate, LinkResponse
from ..services.links import LinkService
from ..observability import LINKS_CREATED_TOTAL

router = APIRouter()


def get_link_service(db: AsyncSession = Depends(get_db)) -> LinkService:
    return LinkService(LinkStore(db))


def as_http_error(exc: LinkError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.put("/links", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_in: Optional[LinkCreate] = Body(None),
    service: LinkService = Depends(get_link_service)
):
    # A missing body is a missing target_url
    link_in = link_in or LinkCreate()
    try:
        link = await service.create_link(link_in.target_url, link_in.code)
    except LinkError as exc:
        raise as_http_error(exc)

    LINKS_CREATED_TOTAL.inc()
    return LinkResponse.model_validate(link)

@router.get("/links", response_model=List[LinkResponse])
async def list_links(service: LinkService = Depends(get_link_service)):
    try:
        links = await service.list_links()
    except LinkError as exc:
        raise as_http_error(exc)
    return [LinkResponse.model_validate(link) for link in links]

@router.get("/links/{code}", response_model=LinkResponse)
async def get_link_stats(
    code: str,
    service: LinkService = Depends(get_link_service)
):
    try:
        link = await service.get_link(code)
    except LinkError as exc:
        raise as_http_error(exc)
    return LinkResponse.model_validate(link)

@router.delete("/links/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    code: str,
    service: LinkService = Depends(get_link_service)
):
    try:
        await service.delete_link(code)
    except LinkError as exc:
        raise as_http_error(exc)
    return None
