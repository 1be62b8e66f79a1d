"""
routers/ — FastAPI route modules.

Each file contains a thin APIRouter. Business logic lives in services/;
routers validate input, call services, and shape responses.
"""
