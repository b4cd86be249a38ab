from fastapi import APIRouter

from courseware.api.v1 import archive, lifecycle, media

api_router = APIRouter()

for path, entity_router in lifecycle.routers.items():
    api_router.include_router(entity_router, prefix=f"/{path}", tags=[path])
api_router.include_router(media.images_router, prefix="/images", tags=["images"])
api_router.include_router(media.videos_router, prefix="/videos", tags=["videos"])
api_router.include_router(archive.router, prefix="/archive", tags=["archive"])
