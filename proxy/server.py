"""
AuthServer class for CLI control of the FastAPI application.
"""
import logging
from typing import Optional

import uvicorn

from settings import PORT, LOG_LEVEL, BIND_ADDRESS
from .app import app

logger = logging.getLogger(__name__)


class AuthServer:
    """Auth server wrapper for CLI control"""

    def __init__(self, bind_address: Optional[str] = None, port: Optional[int] = None):
        self.server = None
        self.config = None
        self.bind_address = bind_address or BIND_ADDRESS
        self.port = port or PORT

    def run(self):
        """Run the auth server (blocking)"""
        logger.info(f"Starting Kiro account auth server on http://{self.bind_address}:{self.port}")
        logger.info("Available endpoints: /auth/* (login flows), /accounts/* (refresh, status, import)")
        self.config = uvicorn.Config(
            app,
            host=self.bind_address,
            port=self.port,
            log_level=LOG_LEVEL,
            access_log=False  # Reduce noise in CLI
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()

    def stop(self):
        """Stop the auth server"""
        if self.server:
            self.server.should_exit = True
