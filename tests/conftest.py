import asyncio
import hashlib
import json

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mcfetch.models import InstallOptions
from mcfetch.rules import Platform
from mcfetch.services.http_client import HttpClient

LINUX = Platform(name="linux", arch="x86_64", version="6.0", archbits="64")
NATIVE_CLASSIFIERS = {
    "linux": "natives-linux",
    "windows": "natives-windows",
    "osx": "natives-osx",
}


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


class MockRepository:
    """
    本地 HTTP 仓库

    记录每个请求路径，可注入失败次数，可挂起指定前缀的请求，支持 Last-Modified / If-Modified-Since。
    """

    def __init__(self):
        self.files = {}
        self.requests = []
        self.failures = {}
        self.last_modified = {}
        self.honor_conditional = True
        self.holds = {}
        self.server = None
        self.base = ""

    async def start(self):
        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", self.handle)
        self.server = TestServer(app)
        await self.server.start_server()
        self.base = str(self.server.make_url("/"))

    async def close(self):
        if self.server is not None:
            await self.server.close()

    def url(self, path: str) -> str:
        return self.base + path.lstrip("/")

    def add(self, path: str, body: bytes) -> dict:
        self.files["/" + path.lstrip("/")] = body
        return {"url": self.url(path), "sha1": sha1(body), "size": len(body)}

    def add_json(self, path: str, data) -> dict:
        return self.add(path, json.dumps(data).encode("utf-8"))

    def fail(self, path: str, times: int = 1, status: int = 500):
        self.failures["/" + path.lstrip("/")] = [times, status]

    def hold(self, prefix: str) -> asyncio.Event:
        """挂起匹配前缀的请求，直到返回的事件被 set"""
        gate = asyncio.Event()
        self.holds["/" + prefix.lstrip("/")] = gate
        return gate

    def paths(self, prefix: str = "") -> list:
        return [p for p in self.requests if p.startswith("/" + prefix.lstrip("/"))]

    async def handle(self, request: web.Request) -> web.Response:
        path = request.path
        self.requests.append(path)

        for prefix, gate in self.holds.items():
            if path.startswith(prefix):
                await gate.wait()

        failure = self.failures.get(path)
        if failure and failure[0] > 0:
            failure[0] -= 1
            return web.Response(status=failure[1])

        body = self.files.get(path)
        if body is None:
            return web.Response(status=404)

        headers = {}
        last_modified = self.last_modified.get(path)
        if last_modified:
            headers["Last-Modified"] = last_modified
            conditional = request.headers.get("If-Modified-Since")
            if self.honor_conditional and conditional == last_modified:
                return web.Response(status=304, headers=headers)
        return web.Response(body=body, headers=headers)


@pytest_asyncio.fixture
async def repo():
    repository = MockRepository()
    await repository.start()
    yield repository
    await repository.close()


@pytest_asyncio.fixture
async def client():
    async with HttpClient(timeout=10) as http:
        yield http


@pytest.fixture
def options(repo, tmp_path):
    return InstallOptions(
        version_manifest_url=repo.url("mc/version_manifest.json"),
        libraries_url=repo.url("maven/"),
        assets_url=repo.url("assets/"),
        fabric_meta_url=repo.url("fabric/"),
        forge_maven_url=repo.url("forge"),
        temp_dir=str(tmp_path / "forge-temp"),
        max_retries=1,
        retry_delay=0,
        timeout=10,
    )


@pytest.fixture
def game_dir(tmp_path):
    root = tmp_path / ".minecraft"
    root.mkdir()
    return root


def publish_vanilla(repo: MockRepository, version_id: str = "1.0") -> dict:
    """在仓库中发布一个原版版本，返回其版本清单"""
    assets = {
        "minecraft/sounds/step.ogg": b"step-sound",
        "icons/icon_16x16.png": b"icon-bytes",
    }
    objects = {}
    for name, body in assets.items():
        digest = sha1(body)
        repo.add(f"assets/{digest[:2]}/{digest}", body)
        objects[name] = {"hash": digest, "size": len(body)}
    index_ref = repo.add_json(f"indexes/{version_id}.json", {"objects": objects})

    alpha = b"alpha-library"
    classifiers = {}
    for classifier in NATIVE_CLASSIFIERS.values():
        path = f"org/lwjgl/lwjgl-platform/2.9/lwjgl-platform-2.9-{classifier}.jar"
        info = repo.add(f"maven/{path}", f"native-{classifier}".encode())
        classifiers[classifier] = {**info, "path": path}

    manifest = {
        "id": version_id,
        "type": "release",
        "mainClass": "net.minecraft.client.main.Main",
        "minecraftArguments": "--username ${auth_player_name}",
        "assets": version_id,
        "assetIndex": {"id": version_id, **index_ref},
        "downloads": {
            "client": repo.add(f"jars/{version_id}/client.jar", b"client-jar-" + version_id.encode()),
            "server": repo.add(f"jars/{version_id}/server.jar", b"server-jar-" + version_id.encode()),
        },
        "libraries": [
            {
                "name": "com.example:alpha:1.0",
                "downloads": {
                    "artifact": {
                        **repo.add("maven/com/example/alpha/1.0/alpha-1.0.jar", alpha),
                        "path": "com/example/alpha/1.0/alpha-1.0.jar",
                    }
                },
            },
            {
                "name": "org.lwjgl:lwjgl-platform:2.9",
                "natives": dict(NATIVE_CLASSIFIERS),
                "downloads": {"classifiers": classifiers},
            },
        ],
    }
    version_ref = repo.add_json(f"v1/{version_id}.json", manifest)
    repo.add_json(
        "mc/version_manifest.json",
        {
            "latest": {"release": version_id, "snapshot": version_id},
            "versions": [
                {
                    "id": version_id,
                    "type": "release",
                    "url": version_ref["url"],
                    "sha1": version_ref["sha1"],
                    "time": "2019-01-01T00:00:00+00:00",
                    "releaseTime": "2019-01-01T00:00:00+00:00",
                }
            ],
        },
    )
    return manifest


@pytest.fixture
def vanilla(repo):
    return publish_vanilla(repo)


def version_entry(repo: MockRepository, version_id: str = "1.0") -> dict:
    index = json.loads(repo.files["/mc/version_manifest.json"])
    return next(v for v in index["versions"] if v["id"] == version_id)
