from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response

from caffeine_lib.errors import NotFoundNamespace, NotFoundRecord
from caffeine_lib.server.errors import error_response
from caffeine_lib.services.resolver import resolve_service

router = APIRouter()

NAME_PATTERN = r"^[a-zA-Z0-9]+$"
DEFAULT_MAX_BODY = 1048576

Namespace = Annotated[str, Path(pattern=NAME_PATTERN)]
Key = Annotated[str, Path(pattern=NAME_PATTERN)]


def _service(request: Request):
    return resolve_service(request, 'document_service')


def _user(request: Request) -> Optional[str]:
    return getattr(request.state, 'user', None)


def _json(content: bytes, status_code: int = 200) -> Response:
    return Response(content=content, status_code=status_code, media_type='application/json')


async def _read_body(request: Request) -> bytes:
    limit = getattr(request.app.state, 'max_body_bytes', DEFAULT_MAX_BODY)
    declared = request.headers.get('content-length')
    if declared and declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail='request body too large')
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=413, detail='request body too large')
        chunks.append(chunk)
    return b''.join(chunks)


@router.get('/ns')
def api_namespaces(request: Request):
    return _service(request).list_namespaces()


@router.get('/ns/{namespace}')
def api_namespace_get(request: Request, namespace: Namespace):
    return _service(request).get_namespace(namespace)


@router.post('/ns/{namespace}')
def api_namespace_post(namespace: Namespace):
    raise HTTPException(status_code=501, detail='cannot POST to this endpoint!')


@router.delete('/ns/{namespace}', status_code=202)
def api_namespace_delete(request: Request, namespace: Namespace):
    _service(request).delete_namespace(namespace, user=_user(request))
    return {}


@router.get('/ns/{namespace}/{key}')
def api_item_get(request: Request, namespace: Namespace, key: Key):
    return _json(_service(request).get_item(namespace, key))


@router.post('/ns/{namespace}/{key}', status_code=201)
async def api_item_post(request: Request, namespace: Namespace, key: Key):
    body = await _read_body(request)
    stored = await run_in_threadpool(_service(request).put_item, namespace, key, body, _user(request))
    return _json(stored, status_code=201)


@router.delete('/ns/{namespace}/{key}', status_code=202)
def api_item_delete(request: Request, namespace: Namespace, key: Key):
    _service(request).delete_item(namespace, key, user=_user(request))
    return {}


@router.get('/schema/{namespace}')
def api_schema_get(request: Request, namespace: Namespace):
    try:
        return _json(_service(request).get_schema(namespace))
    except (NotFoundRecord, NotFoundNamespace) as e:
        return error_response(e, 404)


@router.post('/schema/{namespace}', status_code=201)
async def api_schema_post(request: Request, namespace: Namespace):
    body = await _read_body(request)
    stored = await run_in_threadpool(_service(request).put_schema, namespace, body)
    return _json(stored, status_code=201)


@router.delete('/schema/{namespace}', status_code=202)
def api_schema_delete(request: Request, namespace: Namespace):
    try:
        _service(request).delete_schema(namespace)
    except (NotFoundRecord, NotFoundNamespace) as e:
        return error_response(e, 404)
    return JSONResponse(status_code=202, content={})


@router.get('/search/{namespace}')
def api_search(request: Request, namespace: Namespace, filter_expr: Annotated[str, Query(alias='filter')]):
    return {'results': _service(request).search(namespace, filter_expr)}
