import uvicorn
from typing import Optional
from fastapi import FastAPI
from contextlib import asynccontextmanager

from call_handler import CallHandler
from dialogue import DialogueEngine
from orchestrator import CallOrchestrator
from router import router
from settings import settings
from state_manager import JobStateManager

def create_app(orchestrator: Optional[CallOrchestrator] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if orchestrator is not None:
            app.state.orchestrator = orchestrator
            yield
            return
        call_handler = CallHandler()
        dialogue_engine = DialogueEngine()
        app.state.orchestrator = CallOrchestrator(
            jobs = JobStateManager(),
            telephony = call_handler,
            dialogue = dialogue_engine,
        )
        yield
        await call_handler.close()
        await dialogue_engine.close()

    app = FastAPI(title = "Procurement Caller", lifespan = lifespan)
    app.include_router(router)
    return app

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host = settings.HOST, port = settings.PORT)
