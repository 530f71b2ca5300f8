"""
Web interface for Service IP Mapper.
"""

import logging
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import JSONResponse

from . import __version__
from .aws_utils import AWSClientFactory, build_providers
from .config import MapperConfig
from .errors import ConfigurationError, UpstreamFetchError
from .logging_utils import generate_run_id, log_run_end, log_run_start, setup_logger
from .mapper import ServiceIpMapper

setup_logger("service_ip_mapper")
logger = logging.getLogger(__name__)


class WebApplicationFactory:
    """Factory for creating and configuring the FastAPI application."""

    @staticmethod
    def create_app() -> FastAPI:
        app = FastAPI(title="Service IP Mapper", version=__version__)
        RouteRegistrar.register_routes(app)
        return app


class RouteRegistrar:
    """Handles registration of web routes."""

    @staticmethod
    def register_routes(app: FastAPI) -> None:
        @app.get("/api/test")
        async def test_endpoint() -> Any:
            """Test endpoint to verify API is working."""
            return {"status": "ok", "message": "API is working"}

        @app.get("/api/profiles")
        async def get_profiles() -> Any:
            """Get available AWS profiles."""
            return {"profiles": AWSClientFactory.available_profiles()}

        @app.post("/api/correlate")
        async def correlate(
            group_name: str = Form(""),
            stream_prefix: Optional[str] = Form(None),
            profile: Optional[str] = Form(None),
            region: Optional[str] = Form(None),
        ) -> Any:
            """Run one correlation and return the report as JSON."""
            config = MapperConfig(
                group_name=group_name.strip() or None,
                stream_prefix=stream_prefix or None,
                profile=profile or None,
                region=region or None,
            )
            return await CorrelationService().run(config)


class CorrelationService:
    """Runs a correlation for a web request."""

    async def run(self, config: MapperConfig) -> JSONResponse:
        run_id = generate_run_id()

        try:
            config.validate()
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        log_run_start(
            logger,
            run_id,
            group_name=config.group_name,
            stream_prefix=config.stream_prefix,
            profile=config.profile,
        )

        try:
            providers = build_providers(config.region, config.profile)
            mapper = ServiceIpMapper(
                config,
                providers.logs,
                providers.dns,
                providers.load_balancers,
                providers.interfaces,
            )
            report = await mapper.generate_ip_mapping()
        except UpstreamFetchError as e:
            log_run_end(logger, run_id, False, error=str(e))
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            log_run_end(logger, run_id, False, error=str(e))
            raise HTTPException(status_code=500, detail=str(e))

        content = report.to_dict()
        content["run_id"] = run_id
        log_run_end(
            logger,
            run_id,
            True,
            matches=len(report.results),
            failures=len(report.failures),
        )
        return JSONResponse(content=content)


# Application instance
app = WebApplicationFactory.create_app()


def run_server() -> None:
    """Run the web server."""
    print("Starting Service IP Mapper Web Interface...")
    print("Open your browser to: http://localhost:8000/docs")
    uvicorn.run(app, host="0.0.0.0", port=8000)
