"""Image upload and retrieval endpoints. All routes require a bearer token."""

from fastapi import APIRouter, Depends, File, Response, UploadFile

from chronoline.dependencies import ImageServiceDep, get_current_user
from chronoline.errors import InternalError, NotFoundError
from chronoline.models import ImageInfo, ImageUploadResult

router = APIRouter(dependencies=[Depends(get_current_user)])

CACHE_CONTROL = "public, max-age=31536000"


@router.post("/upload", response_model=ImageUploadResult)
async def upload_image(service: ImageServiceDep, image: UploadFile = File(...)):
    # One byte past the cap is enough for the service to reject the file.
    content = await image.read(service.max_bytes + 1)
    return await service.upload(content, image.content_type, image.filename)


@router.get("/{filename}")
async def get_image(filename: str, service: ImageServiceDep):
    try:
        result = await service.get_image_bytes(filename)
    except ValueError as exc:
        raise InternalError("Invalid image data format") from exc
    if not result:
        raise NotFoundError("Image not found")

    mime_type, payload = result
    return Response(
        content=payload,
        media_type=mime_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/{filename}/info", response_model=ImageInfo)
async def get_image_info(filename: str, service: ImageServiceDep):
    info = await service.get_info(filename)
    if not info:
        raise NotFoundError("Image not found")
    return info


@router.delete("/{filename}")
async def delete_image(filename: str, service: ImageServiceDep):
    deleted = await service.delete_image(filename)
    if not deleted:
        raise NotFoundError("Image not found")
    return {"message": "Image deleted successfully"}
