"""
McFetch 服务层

包含业务逻辑服务：HTTP 客户端、版本索引、清单解析、文件解析、诊断。
"""

from mcfetch.services.http_client import HttpClient
from mcfetch.services.version_index import fetch_remote_manifest_index
from mcfetch.services.manifest_parser import merge_manifests, parse
from mcfetch.services.artifact_resolver import ArtifactResolver
from mcfetch.services.diagnostics import diagnose

__all__ = [
    "HttpClient",
    "fetch_remote_manifest_index",
    "merge_manifests",
    "parse",
    "ArtifactResolver",
    "diagnose",
]
