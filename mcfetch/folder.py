"""
游戏目录布局

根据版本 ID、库坐标和资源哈希计算磁盘路径。
"""

import os
from pathlib import Path
from typing import Union


class MinecraftFolder:
    """.minecraft 目录"""

    def __init__(self, root: Union[str, "os.PathLike[str]"]):
        self.root = Path(root)

    @classmethod
    def of(cls, location: Union[str, "os.PathLike[str]", "MinecraftFolder"]) -> "MinecraftFolder":
        if isinstance(location, MinecraftFolder):
            return location
        return cls(location)

    @property
    def versions_dir(self) -> Path:
        return self.root / "versions"

    @property
    def libraries_dir(self) -> Path:
        return self.root / "libraries"

    @property
    def assets_dir(self) -> Path:
        return self.root / "assets"

    def get_version_dir(self, version_id: str) -> Path:
        return self.versions_dir / version_id

    def get_version_json(self, version_id: str) -> Path:
        return self.get_version_dir(version_id) / f"{version_id}.json"

    def get_version_jar(self, version_id: str, side: str = "client") -> Path:
        if side == "server":
            return self.get_version_dir(version_id) / f"{version_id}-server.jar"
        return self.get_version_dir(version_id) / f"{version_id}.jar"

    def get_library(self, relative_path: str) -> Path:
        return self.libraries_dir / relative_path

    def get_asset_index(self, index_id: str) -> Path:
        return self.assets_dir / "indexes" / f"{index_id}.json"

    def get_asset_object(self, sha1: str) -> Path:
        return self.assets_dir / "objects" / sha1[:2] / sha1

    def resolve(self, relative_path: str) -> Path:
        """将 POSIX 相对路径转换为绝对路径"""
        return self.root.joinpath(*relative_path.split("/"))

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def __repr__(self) -> str:
        return f"<MinecraftFolder {self.root}>"
