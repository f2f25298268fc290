from __future__ import annotations

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from spycam.config import PipelineConfig
from spycam.logging_setup import setup_logging
from spycam.schemas import (
    FrameOutcomeResponse,
    HealthResponse,
    RawFramePayload,
    StatusResponse,
    WsMessage,
)
from spycam.services.session import CaptureSession, FrameOutcome, SessionStateError
from spycam.services.sources import FrameSourceError, PushFrameSource
from spycam.services.transport import WebSocketDisplayTransport

load_dotenv()
logger = setup_logging()


transport = WebSocketDisplayTransport()
session = CaptureSession(transport=transport, config=PipelineConfig())


@asynccontextmanager
async def lifespan(_: FastAPI):
    if os.getenv("SPYCAM_AUTOSTART", "0") in ("1", "true", "yes"):
        await session.start()
    logger.info("spycam backend ready, capture %s", session.state.value)
    yield
    await session.stop()
    logger.info("spycam backend shut down")


app = FastAPI(
    title="spycam backend",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _status() -> StatusResponse:
    return StatusResponse(
        state=session.state.value,
        revision=session.revision,
        metrics=dict(session.metrics.__dict__),
        last_error=session.last_error,
        preview_available=session.preview is not None,
        display_clients=await transport.client_count(),
    )


async def _ingest(payload: RawFramePayload) -> FrameOutcome:
    source = session.source
    if not isinstance(source, PushFrameSource):
        return FrameOutcome.IGNORED
    try:
        frame = payload.to_raw_frame()
    except ValueError as error:
        raise HTTPException(status_code=422, detail=f"invalid plane data: {error}") from error
    return await source.push(frame)


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(state=session.state.value)


@app.get("/api/status", response_model=StatusResponse)
async def status() -> StatusResponse:
    return await _status()


@app.get("/api/config")
async def get_config() -> dict:
    return {"revision": session.revision, "config": session.config.model_dump()}


@app.put("/api/config")
async def put_config(patch: dict) -> dict:
    try:
        config = await session.update_config(patch)
    except ValidationError as error:
        raise HTTPException(status_code=422, detail=error.errors(include_context=False)) from error
    return {"revision": session.revision, "config": config.model_dump()}


@app.post("/api/capture/start", response_model=StatusResponse)
async def start_capture() -> StatusResponse:
    try:
        await session.start()
    except SessionStateError as error:
        raise HTTPException(status_code=409, detail=str(error)) from error
    except FrameSourceError as error:
        raise HTTPException(status_code=503, detail=str(error)) from error
    return await _status()


@app.post("/api/capture/stop", response_model=StatusResponse)
async def stop_capture() -> StatusResponse:
    await session.stop()
    return await _status()


@app.post("/api/frames", response_model=FrameOutcomeResponse)
async def push_frame(payload: RawFramePayload) -> FrameOutcomeResponse:
    outcome = await _ingest(payload)
    return FrameOutcomeResponse(
        outcome=outcome.value,
        state=session.state.value,
        frames_in=session.metrics.frames_in,
    )


@app.get("/api/preview")
async def preview() -> Response:
    bitmap = session.preview
    if bitmap is None:
        raise HTTPException(status_code=404, detail="no preview yet")
    return Response(content=bitmap.data, media_type="image/png")


@app.websocket("/ws/display")
async def display_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    await transport.attach(websocket)
    try:
        while True:
            # displays only listen; inbound text or bytes are ignored
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
    except WebSocketDisconnect:
        return
    finally:
        await transport.detach(websocket)


@app.websocket("/ws/camera")
async def camera_socket(websocket: WebSocket) -> None:
    await websocket.accept()

    try:
        while True:
            try:
                incoming = WsMessage.model_validate_json(await websocket.receive_text())
            except ValidationError:
                await websocket.send_json({"type": "error", "payload": {"message": "Malformed message"}})
                continue

            if incoming.type == "ping":
                await websocket.send_json({"type": "pong", "payload": incoming.payload})
                continue

            if incoming.type == "frame":
                try:
                    payload = RawFramePayload.model_validate(incoming.payload)
                    outcome = await _ingest(payload)
                except (ValidationError, HTTPException) as error:
                    await websocket.send_json(
                        {
                            "type": "error",
                            "payload": {"message": "Invalid frame payload", "details": str(error)},
                        }
                    )
                    continue
                await websocket.send_json(
                    {
                        "type": "frame.outcome",
                        "payload": {
                            "outcome": outcome.value,
                            "state": session.state.value,
                            "metrics": session.metrics.__dict__,
                        },
                    }
                )
                continue

            await websocket.send_json(
                {
                    "type": "error",
                    "payload": {"message": f"Unknown message type: {incoming.type}"},
                }
            )

    except WebSocketDisconnect:
        return


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("spycam.main:app", host=host, port=port, reload=True)
