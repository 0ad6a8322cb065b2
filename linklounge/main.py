"""ASGI entry point: ``uvicorn linklounge.main:app``."""
import logging

from linklounge.app import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()
