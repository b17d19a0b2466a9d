"""In-memory state behind the local gateway emulator."""

import hashlib
import secrets
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Iterable, Optional, Set, Tuple


@dataclass
class Pod:
    """A pod owned by one user."""

    name: str
    password: str
    files: Dict[str, bytes] = field(default_factory=dict)
    is_open: bool = False


@dataclass
class Blob:
    """Content stored by identifier."""

    name: str
    data: bytes


class GatewayStore:
    """Users, sessions, pods and content-addressed blobs.

    Every method takes the store lock, so the emulator can serve concurrent
    requests from a threaded test client.
    """

    SESSION_COOKIE = "fairOS-dfs"

    def __init__(
        self,
        users: Optional[Dict[str, str]] = None,
        api_keys: Optional[Iterable[str]] = None,
        advertise_length: bool = True,
    ) -> None:
        self.users: Dict[str, str] = dict(users or {})
        self.api_keys: Set[str] = set(api_keys or [])
        self.advertise_length = advertise_length
        self.sessions: Dict[str, str] = {}
        self.pods: Dict[Tuple[str, str], Pod] = {}
        self.shares: Dict[str, Tuple[str, str]] = {}
        self.blobs: Dict[str, Blob] = {}
        self.lock = Lock()

    # Accounts
    def login(self, username: str, password: str) -> Optional[str]:
        with self.lock:
            if self.users.get(username) != password:
                return None
            token = secrets.token_hex(16)
            self.sessions[token] = username
            return token

    def user_for_session(self, token: Optional[str]) -> Optional[str]:
        with self.lock:
            return self.sessions.get(token) if token else None

    def is_api_key(self, key: str) -> bool:
        with self.lock:
            return key in self.api_keys

    # Pods
    def get_pod(self, user: str, name: str) -> Optional[Pod]:
        with self.lock:
            return self.pods.get((user, name))

    def create_pod(self, user: str, name: str, password: str) -> bool:
        with self.lock:
            if (user, name) in self.pods:
                return False
            self.pods[(user, name)] = Pod(name=name, password=password, is_open=True)
            return True

    def share_pod(self, user: str, name: str) -> str:
        with self.lock:
            reference = secrets.token_hex(32)
            self.shares[reference] = (user, name)
            return reference

    def receive_pod(self, user: str, reference: str) -> Optional[str]:
        """Copy a shared pod into ``user``'s account; returns its name."""
        with self.lock:
            origin = self.shares.get(reference)
            if origin is None:
                return None
            source = self.pods[origin]
            if (user, source.name) in self.pods:
                raise KeyError(source.name)
            self.pods[(user, source.name)] = Pod(
                name=source.name,
                password=source.password,
                files=dict(source.files),
            )
            return source.name

    def put_file(self, user: str, pod: str, path: str, data: bytes) -> None:
        with self.lock:
            self.pods[(user, pod)].files[path] = data

    # Blobs
    def add_blob(self, name: str, data: bytes) -> str:
        cid = "bafk" + hashlib.sha256(data).hexdigest()[:52]
        with self.lock:
            self.blobs[cid] = Blob(name=name, data=data)
        return cid

    def get_blob(self, cid: str) -> Optional[Blob]:
        with self.lock:
            return self.blobs.get(cid)
