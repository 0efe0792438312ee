import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .factory import StarterSession, build_session
from .plc.motor_state import MotorState
from .plc.snapshot import MotorSnapshot
from .settings import StarterConfig

logger = logging.getLogger("API")

# Operator-facing actions reachable over HTTP (set_rpm / tick_runtime are driver-only)
OPERATOR_ACTIONS = (
    "press_start",
    "release_start",
    "press_stop",
    "release_stop",
    "start",
    "stop",
    "trigger_emergency_stop",
    "reset_emergency_stop",
    "toggle_mcb",
    "reset_overload",
    "reset_runtime",
    "reset_fault",
    "trip_overload",
)


class SnapshotModel(BaseModel):
    """Control surface view of a MotorSnapshot."""
    motorState: MotorState
    motorRPM: float
    ratedRPM: float
    isContactorEnergized: bool
    isStartButtonPressed: bool
    isStopButtonPressed: bool
    isEmergencyStopActive: bool
    currentFlow: bool
    mcbClosed: bool
    overloadTripped: bool
    runningTime: int
    startTime: Optional[float] = None
    faultCondition: Optional[str] = None
    systemVoltage: float
    systemCurrent: float
    motorTemperature: float

    @classmethod
    def from_snapshot(cls, snapshot: MotorSnapshot) -> "SnapshotModel":
        return cls(**snapshot.to_dict())


# --- WebSocket Manager ---
class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict):
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping WebSocket client: {e}")
                self.disconnect(connection)

    def schedule_broadcast(self, message: dict):
        """Broadcast from a synchronous callback running on the event loop."""
        if not self.active_connections:
            return
        task = asyncio.get_running_loop().create_task(self.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def create_app(config: Optional[StarterConfig] = None,
               session: Optional[StarterSession] = None) -> FastAPI:
    """
    Build the API for ONE starter session.

    The session is owned by the app (app.state.session), never a module global.
    """
    session = session or build_session(config)
    manager = ConnectionManager()
    controller = session.controller

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Driver timers live on this event loop, together with every endpoint
        unsubscribe = controller.subscribe(lambda s: manager.schedule_broadcast(s.to_dict()))
        session.start()
        logger.info(">>> Starter session started")
        try:
            yield
        finally:
            session.shutdown()
            unsubscribe()
            logger.info(">>> Starter session stopped")

    app = FastAPI(title="DOL Motor Starter Simulator API", lifespan=lifespan)
    app.state.session = session
    app.state.manager = manager

    # Allow CORS for the control surface page
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def read_root():
        return {"status": "ok", "service": "DOL Motor Starter Simulator"}

    @app.get("/api/state", response_model=SnapshotModel)
    async def get_state():
        """Returns the full motor snapshot."""
        return SnapshotModel.from_snapshot(controller.snapshot)

    @app.get("/api/log")
    async def get_log():
        """Returns the recent transition log."""
        return [record.to_dict() for record in controller.get_transition_log()]

    @app.post("/api/actions/{name}")
    async def post_action(name: str):
        """Invoke one operator action. Endpoints are async so dispatch stays on the loop."""
        if name not in OPERATOR_ACTIONS:
            return {"status": "error", "error": f"unknown action: {name}"}
        snapshot = getattr(controller, name)()
        return {"status": "success", "state": SnapshotModel.from_snapshot(snapshot).model_dump(mode="json")}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await manager.connect(websocket)
        try:
            await websocket.send_json(controller.snapshot.to_dict())
            while True:
                # Push-only channel, keep the socket open
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app


if __name__ == "__main__":
    from .cli import main
    main(["serve"])
