from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from call_context import CallbackContext, CallbackKind, CallContextFactory
from errors import NoMatchError, NotFoundError, ValidationError
from models import JobCreatedResponse, JobRequest, JobStatus
from orchestrator import CallOrchestrator
from settings import settings
from utils import print_debug

router = APIRouter()

def _orchestrator(request: Request) -> CallOrchestrator:
    return request.app.state.orchestrator

@router.get("/")
async def read_root():
    return PlainTextResponse("Procurement Caller is running")

@router.get("/api/config")
async def read_config():
    # シークレットは返さない
    return JSONResponse(content = {
        "fromNumber": settings.ACS_PHONE_NUMBER,
        "callbackBaseUrl": settings.CALLBACK_BASEURL,
        "telephonyConfigured": "your_access_key" not in settings.ACS_CONNECTION_STRING,
        "dialogueConfigured": settings.AZURE_OPENAI_SERVICE_KEY != "your_aoai_service_key",
        "defaultLanguage": settings.DEFAULT_LANGUAGE,
    })

@router.post("/api/jobs")
async def create_job(request: Request, job_request: JobRequest):
    orchestrator = _orchestrator(request)
    try:
        job_id = await orchestrator.initiate_job(
            items = job_request.items,
            specialty = job_request.specialty,
            supplier_pool = job_request.suppliers,
            language = job_request.language,
        )
    except ValidationError as e:
        return JSONResponse(content = {"message": str(e)}, status_code = 400)
    except NoMatchError as e:
        return JSONResponse(content = {"message": str(e)}, status_code = 422)
    view = orchestrator.get_job_view(job_id)
    response = JobCreatedResponse(job_id = job_id, status = view.status)
    return JSONResponse(content = response.model_dump(mode = "json", by_alias = True), status_code = 201)

@router.get("/api/jobs")
async def list_jobs(request: Request):
    views = _orchestrator(request).list_job_views()
    return JSONResponse(content = [view.model_dump(mode = "json", by_alias = True) for view in views])

@router.get("/api/jobs/{job_id}")
async def read_job(request: Request, job_id: str):
    try:
        view = _orchestrator(request).get_job_view(job_id)
    except NotFoundError as e:
        return JSONResponse(content = {"message": str(e)}, status_code = 404)
    return JSONResponse(content = view.model_dump(mode = "json", by_alias = True))

@router.post("/api/jobs/{job_id}/end")
async def end_job_call(request: Request, job_id: str):
    try:
        hung_up = await _orchestrator(request).end_call(job_id)
    except NotFoundError as e:
        return JSONResponse(content = {"message": str(e)}, status_code = 404)
    return JSONResponse(content = {
        "message": "Call ended",
        "status": JobStatus.CALL_ENDED.value,
        "providerHangUp": hung_up,
    })

@router.post("/api/callbacks/{conference}")
async def handle_callback(request: Request, conference: str):
    print_debug(f"Callback event received for {conference}", log_level = "debug")
    orchestrator = _orchestrator(request)
    try:
        call_context: CallbackContext = await CallContextFactory(request, conference).build()
    except (ValueError, KeyError) as e:
        print_debug(f"Malformed callback for {conference}: {e}", log_level = "error")
        return JSONResponse(content = {"message": "Malformed callback payload"}, status_code = 400)

    if call_context.job_id is None or not orchestrator.jobs.exists(call_context.job_id):
        return JSONResponse(content = {"message": f"Unknown conference {conference}"}, status_code = 404)

    for event in call_context.events:
        # 通話が開始された時
        if event.kind == CallbackKind.PARTICIPANT_JOINED:
            await orchestrator.on_participant_joined(event.job_id)

        # 読み上げが終わった時
        elif event.kind == CallbackKind.PROMPT_PLAYED:
            await orchestrator.on_prompt_played(event.job_id, event.follow_up)

        elif event.kind == CallbackKind.PROMPT_FAILED:
            await orchestrator.on_prompt_failed(event.job_id)

        # 相手の発話を受信
        elif event.kind == CallbackKind.SPEECH_RECEIVED:
            await orchestrator.on_speech_received(event.job_id, event.text)

        elif event.kind == CallbackKind.REPLY_TIMEOUT:
            await orchestrator.on_reply_timeout(event.job_id)

        elif event.kind == CallbackKind.PROVIDER_STATUS:
            await orchestrator.on_provider_status(event.job_id, event.provider_state)
    return Response(status_code = 200)
