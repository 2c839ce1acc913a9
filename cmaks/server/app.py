"""FastAPI application exposing the cluster operations as RPC endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from cmaks import __version__
from cmaks.api.models import (
    CreateClusterMsg,
    CreateClusterReply,
    DeleteClusterMsg,
    DeleteClusterReply,
    EnableClusterAutoscalingMsg,
    EnableClusterAutoscalingReply,
    GetClusterListMsg,
    GetClusterListReply,
    GetClusterMsg,
    GetClusterNodeCountMsg,
    GetClusterNodeCountReply,
    GetClusterReply,
    GetClusterUpgradesMsg,
    GetClusterUpgradesReply,
    ScaleClusterMsg,
    ScaleClusterReply,
    UpgradeClusterMsg,
    UpgradeClusterReply,
)
from cmaks.config import ServerConfig
from cmaks.errors import (
    ClientConstructionError,
    ClusterNotFoundError,
    ClusterServiceError,
    NodeGroupValidationError,
)
from cmaks.logger import logger
from cmaks.service import ClusterService

ERROR_STATUS_CODES = {
    NodeGroupValidationError: 400,
    ClientConstructionError: 401,
    ClusterNotFoundError: 404,
}


def error_status_code(error: ClusterServiceError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 502


def create_router(service: ClusterService) -> APIRouter:
    router = APIRouter(prefix="/v1", tags=["cluster"])

    # Handlers are plain functions so FastAPI runs the blocking SDK calls in
    # its thread pool.
    @router.post("/CreateCluster", response_model=CreateClusterReply)
    def create_cluster(msg: CreateClusterMsg) -> CreateClusterReply:
        return service.create_cluster(msg)

    @router.post("/GetCluster", response_model=GetClusterReply)
    def get_cluster(msg: GetClusterMsg) -> GetClusterReply:
        return service.get_cluster(msg)

    @router.post("/DeleteCluster", response_model=DeleteClusterReply)
    def delete_cluster(msg: DeleteClusterMsg) -> DeleteClusterReply:
        return service.delete_cluster(msg)

    @router.post("/GetClusterList", response_model=GetClusterListReply)
    def get_cluster_list(msg: GetClusterListMsg) -> GetClusterListReply:
        return service.get_cluster_list(msg)

    @router.post("/GetClusterUpgrades", response_model=GetClusterUpgradesReply)
    def get_cluster_upgrades(msg: GetClusterUpgradesMsg) -> GetClusterUpgradesReply:
        return service.get_cluster_upgrades(msg)

    @router.post("/UpgradeCluster", response_model=UpgradeClusterReply)
    def upgrade_cluster(msg: UpgradeClusterMsg) -> UpgradeClusterReply:
        return service.upgrade_cluster(msg)

    @router.post("/GetClusterNodeCount", response_model=GetClusterNodeCountReply)
    def get_cluster_node_count(
        msg: GetClusterNodeCountMsg,
    ) -> GetClusterNodeCountReply:
        return service.get_cluster_node_count(msg)

    @router.post("/ScaleCluster", response_model=ScaleClusterReply)
    def scale_cluster(msg: ScaleClusterMsg) -> ScaleClusterReply:
        return service.scale_cluster(msg)

    @router.post(
        "/EnableClusterAutoscaling", response_model=EnableClusterAutoscalingReply
    )
    def enable_cluster_autoscaling(
        msg: EnableClusterAutoscalingMsg,
    ) -> EnableClusterAutoscalingReply:
        return service.enable_cluster_autoscaling(msg)

    return router


def create_app(
    config: Optional[ServerConfig] = None,
    service: Optional[ClusterService] = None,
) -> FastAPI:
    """Build the FastAPI application.

    The cluster service is built from *config* unless one is injected.
    """
    if config is None:
        config = ServerConfig()
    if service is None:
        service = ClusterService(config.autoscaler)

    app = FastAPI(
        title="Cluster API for AKS",
        version=__version__,
        openapi_url="/api/openapi.json",
    )

    @app.exception_handler(ClusterServiceError)
    async def cluster_service_error_handler(
        request: Request, exc: ClusterServiceError
    ) -> JSONResponse:
        status_code = error_status_code(exc)
        logger.error(f"{request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status_code,
            content={"stage": exc.stage, "detail": str(exc)},
        )

    @app.get("/health")
    def health_check() -> dict:
        return {"status": "healthy"}

    app.include_router(create_router(service))
    return app
