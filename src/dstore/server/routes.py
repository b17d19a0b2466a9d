"""
API routes for the local gateway emulator.

Speaks the FairOS-dfs dialect (cookie sessions, pods) and the Lighthouse
dialect (bearer key, content identifiers). Failures are always answered with
a ``{"message": ...}`` envelope.
"""

import mimetypes
import posixpath
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from .store import GatewayStore

STREAM_CHUNK = 64 * 1024

# Security
security = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class PodRequest(BaseModel):
    podName: str = Field(..., min_length=1)
    password: str


def get_store(request: Request) -> GatewayStore:
    return request.app.state.store


def current_user(request: Request, store: GatewayStore = Depends(get_store)) -> str:
    """Resolve the session cookie to a user."""
    user = store.user_for_session(request.cookies.get(GatewayStore.SESSION_COOKIE))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid cookie")
    return user


def check_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: GatewayStore = Depends(get_store),
) -> str:
    """Require a known bearer API key."""
    if not credentials or not store.is_api_key(credentials.credentials):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid API key")
    return credentials.credentials


def _stream(data: bytes) -> Iterator[bytes]:
    view = memoryview(data)
    for offset in range(0, len(view), STREAM_CHUNK):
        yield bytes(view[offset : offset + STREAM_CHUNK])


def _byte_response(store: GatewayStore, data: bytes) -> StreamingResponse:
    headers = {"Content-Length": str(len(data))} if store.advertise_length else {}
    return StreamingResponse(
        _stream(data), media_type="application/octet-stream", headers=headers
    )


async def _read_upload(upload: UploadFile) -> bytes:
    data = bytearray()
    while True:
        chunk = await upload.read(STREAM_CHUNK)
        if not chunk:
            return bytes(data)
        data.extend(chunk)


dfs_router = APIRouter(tags=["dfs"])
lighthouse_router = APIRouter(tags=["lighthouse"])


@dfs_router.post("/v2/user/login", summary="Log in and receive a session cookie")
async def login(body: LoginRequest, store: GatewayStore = Depends(get_store)) -> JSONResponse:
    token = store.login(body.username, body.password)
    if token is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid username or password")
    response = JSONResponse({"message": "user logged-in successfully"})
    response.set_cookie(GatewayStore.SESSION_COOKIE, token, httponly=True)
    return response


@dfs_router.post("/v1/pod/new", status_code=status.HTTP_201_CREATED, summary="Create a pod")
async def new_pod(
    body: PodRequest,
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    if not store.create_pod(user, body.podName, body.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="pod already exists")
    return {"message": "pod created successfully"}


def _owned_pod(store: GatewayStore, user: str, body: PodRequest):
    pod = store.get_pod(user, body.podName)
    if pod is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="pod does not exist")
    if pod.password != body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid password")
    return pod


@dfs_router.post("/v1/pod/open", summary="Open a pod")
async def open_pod(
    body: PodRequest,
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    pod = _owned_pod(store, user, body)
    pod.is_open = True
    return {"message": "pod open successfully"}


@dfs_router.post("/v1/pod/share", summary="Share a pod")
async def share_pod(
    body: PodRequest,
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    _owned_pod(store, user, body)
    return {"podSharingReference": store.share_pod(user, body.podName)}


@dfs_router.get("/v1/pod/receive", summary="Import a shared pod")
async def receive_pod(
    sharingRef: str,
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    try:
        name = store.receive_pod(user, sharingRef)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="pod already exists")
    if name is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="sharing reference not found")
    return {"message": "public pod imported", "podName": name}


def _open_pod(store: GatewayStore, user: str, pod_name: str):
    pod = store.get_pod(user, pod_name)
    if pod is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="pod does not exist")
    if not pod.is_open:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="pod not open")
    return pod


@dfs_router.post("/v1/file/upload", summary="Upload a file into a pod")
async def upload_file(
    podName: str = Form(...),
    dirPath: str = Form("/"),
    blockSize: int = Form(1_000_000),
    files: UploadFile = File(...),
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    _open_pod(store, user, podName)
    name = files.filename or "upload"
    data = await _read_upload(files)
    store.put_file(user, podName, posixpath.join(dirPath or "/", name), data)
    return {"Responses": [{"file_name": name, "message": "uploaded successfully"}]}


@dfs_router.post("/v1/file/download", summary="Download a file from a pod")
async def download_file(
    podName: str = Form(...),
    filePath: str = Form(...),
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> StreamingResponse:
    pod = _open_pod(store, user, podName)
    data = pod.files.get(filePath)
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
    return _byte_response(store, data)


@dfs_router.get("/v1/file/stat", summary="File metadata")
async def stat_file(
    podName: str,
    filePath: str,
    user: str = Depends(current_user),
    store: GatewayStore = Depends(get_store),
) -> dict:
    pod = _open_pod(store, user, podName)
    data = pod.files.get(filePath)
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
    return {
        "podName": podName,
        "filePath": filePath,
        "fileName": posixpath.basename(filePath),
        "fileSize": str(len(data)),
        "blockSize": "1000000",
        "contentType": mimetypes.guess_type(filePath)[0] or "",
    }


@lighthouse_router.post("/api/v0/add", summary="Add content")
async def add_file(
    FileData: UploadFile = File(...),
    api_key: str = Depends(check_api_key),
    store: GatewayStore = Depends(get_store),
) -> dict:
    name = FileData.filename or "upload"
    data = await _read_upload(FileData)
    cid = store.add_blob(name, data)
    return {"Name": name, "Hash": cid, "Size": str(len(data))}


@lighthouse_router.get("/api/lighthouse/file_info", summary="Content metadata")
async def file_info(cid: str, store: GatewayStore = Depends(get_store)) -> dict:
    blob = store.get_blob(cid)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
    return {
        "fileSizeInBytes": str(len(blob.data)),
        "cid": cid,
        "encryption": False,
        "fileName": blob.name,
        # The real service sends false when it has no type.
        "mimeType": mimetypes.guess_type(blob.name)[0] or False,
    }


@lighthouse_router.get("/ipfs/{cid}", summary="Fetch content")
async def get_content(cid: str, store: GatewayStore = Depends(get_store)) -> StreamingResponse:
    blob = store.get_blob(cid)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
    return _byte_response(store, blob.data)
