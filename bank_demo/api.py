"""
FastAPI REST API Module

Application instance and server runner. Databases are opened on the first
request, from the configured URLs.
"""

import uvicorn

from .api_modular import create_app
from .config import get_config
from .logging_config import setup_logging


config = get_config()
setup_logging(config.log_level, config.log_format, log_file=config.log_file)

app = create_app(config=config)


# Run server function
def run_server(host: str = None, port: int = None, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "bank_demo.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
