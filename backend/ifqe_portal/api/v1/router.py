from fastapi import APIRouter
from ifqe_portal.api.v1.endpoints import archives, indicators

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "ifqe-portal-backend"}


api_router.include_router(archives.router, prefix="/archives", tags=["Archives"])
api_router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
