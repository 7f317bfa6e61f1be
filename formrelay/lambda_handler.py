"""AWS Lambda entry point.

Mangum translates API Gateway events into ASGI, letting the FastAPI app
run unchanged on Lambda. Configure the API with `multipart/form-data` as
a binary media type so the body reaches the decoder as raw bytes.
"""

from mangum import Mangum

from formrelay.logging.audit import setup_logging
from formrelay.main import app

# Lifespan is off under Lambda, so configure logging at cold start
setup_logging()

handler = Mangum(app, lifespan="off")
