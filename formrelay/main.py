"""B2B Form Relay — FastAPI application entry point.

Accepts a multipart form submission (company fields plus one file) and
relays it into the helpdesk as an uploaded attachment and a ticket.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from formrelay.logging.audit import (
    bind_request,
    get_audit_logger,
    setup_logging,
)
from formrelay.multipart.decoder import ParseError, decode_stream
from formrelay.submission.factory import close_submission_service, get_submission_service
from formrelay.submission.service import MissingFileError, SubmissionError

VERSION = "1.0.0"

SUBMIT_PATH = "/api/b2b-form-submit"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Every verb is routed here so unsupported ones get our JSON 405
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

FAILURE_MESSAGE = "Form submission failed"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Form relay started")
    yield
    await close_submission_service()
    get_audit_logger().info("Form relay stopped")


app = FastAPI(
    title="B2B Form Relay",
    description="Relays B2B form submissions with a file attachment into the helpdesk",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.api_route(SUBMIT_PATH, methods=ROUTED_METHODS)
async def b2b_form_submit(request: Request):
    """Decode the raw multipart stream, then upload the file and open a ticket.

    The body is read straight from the ASGI stream; FastAPI's own form
    parsing is never invoked.
    """
    logger = get_audit_logger()
    rid = bind_request(request.method, request.url.path)
    headers = {**CORS_HEADERS, "X-Request-Id": rid}

    # CORS preflight
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)

    if request.method != "POST":
        return JSONResponse(
            status_code=405,
            content={"error": "Method not allowed"},
            headers=headers,
        )

    try:
        form = await decode_stream(request.stream(), request.headers.get("content-type"))
        # Answer a missing file before the service (and its secrets) are resolved
        if form.file is None:
            raise MissingFileError("No file uploaded")
        result = await get_submission_service().submit(form)

    except MissingFileError:
        return JSONResponse(
            status_code=400,
            content={"error": "No file uploaded"},
            headers=headers,
        )

    except ParseError as e:
        logger.warning(
            "Malformed multipart body",
            extra={"audit_data": {"details": str(e)}},
        )
        return JSONResponse(
            status_code=500,
            content={"error": FAILURE_MESSAGE, "details": str(e)},
            headers=headers,
        )

    except SubmissionError as e:
        content = {"error": FAILURE_MESSAGE, "details": e.details}
        # Upload succeeded but the ticket did not: report the attachment for reconciliation
        if e.attachment_url:
            content["attachmentUrl"] = e.attachment_url
            content["attachmentRemoved"] = bool(e.attachment_removed)
        return JSONResponse(status_code=500, content=content, headers=headers)

    except Exception as e:
        logger.exception("Unexpected error processing form")
        return JSONResponse(
            status_code=500,
            content={"error": FAILURE_MESSAGE, "details": str(e)},
            headers=headers,
        )

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "ticketId": result.ticket_id,
            "message": "Form submitted successfully",
            "attachmentUrl": result.attachment_url,
        },
        headers=headers,
    )
