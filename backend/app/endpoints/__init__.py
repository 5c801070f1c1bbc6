# app/endpoints/__init__.py

# Import routers from each endpoint file
from .app_config import router as app_config
from .bus_lines import router as bus_lines
from .dashboard import router as dashboard
from .data_transfer import router as data_transfer
from .records import batch_router as batch
from .records import build_router

__all__ = ["app_config", "bus_lines", "dashboard", "data_transfer", "batch", "build_router"]
