"""
Pulse Hub HTTP service - FastAPI app receiving agent snapshots and serving them
"""
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from pulse_hub.admin import list_hosts
from pulse_hub.config import HubConfig, load_config
from pulse_hub.db import get_database
from pulse_hub.errors import ParseError, StorageError, ValidationError
from pulse_hub.retention import RetentionPolicy
from pulse_hub.status import AgeStyle, HostStatus
from pulse_hub.store import SampleStore
from pulse_hub.validation import parse_sample

logger = logging.getLogger(__name__)

app = FastAPI(title="Pulse Hub", description="Fleet host monitoring collector")

templates_dir = Path(__file__).parent / 'templates'
templates = Jinja2Templates(directory=str(templates_dir))

_config = HubConfig()
_store: Optional[SampleStore] = None

# Agent-supplied values are stored as received
Scalar = Union[int, float, str, None]


# Models
class SampleRow(BaseModel):
    id: int
    server_name: str
    timestamp: Scalar
    temperature: Scalar
    memory_used: Scalar
    memory_total: Scalar
    memory_percentage: Scalar
    storage_used: Scalar
    storage_total: Scalar
    storage_percentage: Scalar
    cpu_percentage: Scalar
    created_at: Optional[Union[datetime, str]] = None


class HostEntry(BaseModel):
    server_name: str
    last_seen: Scalar
    total_metrics: int


class IngestResult(BaseModel):
    status: str
    message: str


def configure(config: HubConfig) -> SampleStore:
    """Open the store described by config and make it the one requests use"""
    global _config, _store
    if _store is not None:
        _store.close()
    _config = config
    _store = SampleStore(
        get_database(config.db_url),
        retention=RetentionPolicy(config.retention_seconds)
    )
    return _store


def get_store() -> SampleStore:
    if _store is None:
        configure(load_config())
    return _store


def get_config() -> HubConfig:
    return _config


# Error handlers
@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    return JSONResponse(status_code=400, content={'error': str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(
        "Rejected snapshot",
        extra={'context': {'missing': exc.missing, 'client': request.client.host if request.client else None}}
    )
    return JSONResponse(status_code=400, content={'error': str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure", exc_info=exc, extra={'context': {'path': request.url.path}})
    return JSONResponse(status_code=500, content={'error': f"Erreur serveur: {exc}"})


# Endpoints
# Store calls block: keep them off the event loop
@app.post('/metrics', response_model=IngestResult)
async def ingest_metrics(request: Request, store: SampleStore = Depends(get_store)):
    """Receive one snapshot from an agent"""
    sample = parse_sample(await request.body())

    try:
        await run_in_threadpool(store.append, sample)
    except Exception as e:
        # The message is echoed back to the agent as-is
        logger.exception("Could not store snapshot", extra={'context': {'server_name': sample.server_name}})
        return JSONResponse(status_code=500, content={'error': f"Erreur serveur: {e}"})

    logger.info("Metrics stored", extra={'context': {'server_name': sample.server_name}})
    return {'status': 'success', 'message': 'Métriques sauvegardées'}


@app.get('/api/server/{server_name}', response_model=List[SampleRow])
def server_history(
    server_name: str,
    store: SampleStore = Depends(get_store),
    config: HubConfig = Depends(get_config)
):
    """Most recent samples of one host, newest first"""
    return [sample.to_row() for sample in store.history(server_name, config.history_limit)]


@app.get('/api/servers', response_model=List[HostEntry])
def servers(store: SampleStore = Depends(get_store)):
    """Every known host, most recently seen first"""
    return store.host_list()


@app.get('/', response_class=HTMLResponse)
def dashboard(request: Request, store: SampleStore = Depends(get_store)):
    """Serve the dashboard"""
    hosts = list_hosts(store, now=time.time(), style=AgeStyle.LONG)
    online = sum(1 for host in hosts if host.status is HostStatus.ONLINE)
    return templates.TemplateResponse(
        request,
        'dashboard.html',
        {'hosts': hosts, 'online': online, 'offline': len(hosts) - online}
    )


@app.get('/health')
async def health():
    """Health check endpoint"""
    return {'status': 'healthy'}


def run_server(config: HubConfig):
    """Run the Pulse Hub service"""
    configure(config)
    logger.info(
        "Starting collector",
        extra={'context': {'host': config.host, 'port': config.port, 'db_url': config.db_url}}
    )
    uvicorn.run(app, host=config.host, port=config.port)
