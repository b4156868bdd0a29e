"""
远程版本索引模型
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mcfetch.exceptions import ManifestParseError


@dataclass
class VersionIndexEntry:
    """版本索引中的单个版本"""

    id: str
    url: str
    type: str = "release"
    time: Optional[str] = None
    release_time: Optional[str] = None
    sha1: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "VersionIndexEntry":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise ManifestParseError("版本索引条目缺少 id")
        return cls(
            id=data["id"],
            url=data.get("url", ""),
            type=data.get("type", "release"),
            time=data.get("time"),
            release_time=data.get("releaseTime"),
            sha1=data.get("sha1"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type,
            "url": self.url,
            "time": self.time,
            "releaseTime": self.release_time,
        }
        if self.sha1:
            data["sha1"] = self.sha1
        return data


@dataclass
class VersionIndex:
    """
    所有已知版本的列表

    timestamp 为服务器返回的 Last-Modified，etag 为服务器返回的 ETag，
    两者用于判断远程内容是否变化。
    """

    versions: List[VersionIndexEntry] = field(default_factory=list)
    latest: Dict[str, str] = field(default_factory=dict)
    timestamp: Optional[str] = None
    etag: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Any,
        timestamp: Optional[str] = None,
        etag: Optional[str] = None,
    ) -> "VersionIndex":
        if not isinstance(data, dict) or not isinstance(data.get("versions"), list):
            raise ManifestParseError("版本索引缺少 versions 列表")
        return cls(
            versions=[VersionIndexEntry.from_dict(v) for v in data["versions"]],
            latest=dict(data.get("latest") or {}),
            timestamp=timestamp,
            etag=etag,
        )

    def get(self, version_id: str) -> Optional[VersionIndexEntry]:
        for entry in self.versions:
            if entry.id == version_id:
                return entry
        return None

    def latest_release(self) -> Optional[VersionIndexEntry]:
        latest = self.latest.get("release")
        return self.get(latest) if latest else None

    def latest_snapshot(self) -> Optional[VersionIndexEntry]:
        latest = self.latest.get("snapshot")
        return self.get(latest) if latest else None
