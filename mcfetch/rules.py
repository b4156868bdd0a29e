"""
平台规则

实现库文件适用规则 (rules) 的求值、当前平台识别以及 natives 分类器选择。
"""

import platform as _platform
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Platform:
    """规则匹配使用的平台描述"""

    name: str
    arch: str
    version: str = ""
    archbits: str = "64"

    @classmethod
    def current(cls) -> "Platform":
        """识别当前运行平台"""
        name = {
            "Linux": "linux",
            "Windows": "windows",
            "Darwin": "osx",
            "FreeBSD": "freebsd",
        }.get(_platform.system(), "")
        arch = {
            "i386": "x86",
            "i686": "x86",
            "x86_64": "x86_64",
            "amd64": "x86_64",
            "arm64": "arm64",
            "aarch64": "arm64",
            "armv7l": "arm32",
            "armv6l": "arm32",
        }.get(_platform.machine().lower(), "")
        raw_bits = _platform.architecture()[0]
        archbits = "64" if raw_bits == "64bit" else "32" if raw_bits == "32bit" else ""
        return cls(name=name, arch=arch, version=_platform.version(), archbits=archbits)


@dataclass(frozen=True)
class OsCondition:
    """规则中的操作系统条件，所有字段均为可选"""

    name: Optional[str] = None
    arch: Optional[str] = None
    version: Optional[str] = None

    def matches(self, plat: Platform) -> bool:
        if self.name is not None and self.name != plat.name:
            return False
        if self.arch is not None and self.arch != plat.arch:
            return False
        if self.version is not None and re.search(self.version, plat.version) is None:
            return False
        return True


@dataclass(frozen=True)
class Rule:
    """
    单条规则

    action 为 allow 或 disallow，os 与 features 均满足时规则命中。
    """

    action: str
    os: Optional[OsCondition] = None
    features: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Rule":
        os_data = data.get("os")
        os_cond = None
        if isinstance(os_data, dict):
            os_cond = OsCondition(
                name=os_data.get("name"),
                arch=os_data.get("arch"),
                version=os_data.get("version"),
            )
        return cls(
            action=data.get("action", "allow"),
            os=os_cond,
            features=dict(data.get("features") or {}),
        )

    def to_dict(self) -> dict:
        data: dict = {"action": self.action}
        if self.os is not None:
            data["os"] = {
                k: v
                for k, v in (
                    ("name", self.os.name),
                    ("arch", self.os.arch),
                    ("version", self.os.version),
                )
                if v is not None
            }
        if self.features:
            data["features"] = dict(self.features)
        return data

    def matches(self, plat: Platform, features: Optional[Dict[str, bool]] = None) -> bool:
        if self.os is not None and not self.os.matches(plat):
            return False
        if self.features:
            features = features or {}
            for name, expected in self.features.items():
                if features.get(name, False) != expected:
                    return False
        return True


def evaluate_rules(
    rules: List[Rule],
    plat: Optional[Platform] = None,
    features: Optional[Dict[str, bool]] = None,
) -> bool:
    """
    按顺序求值规则列表，最后一条命中的规则决定结果

    Args:
        rules: 规则列表，为空时视为允许
        plat: 目标平台，默认当前平台
        features: 启用的特性

    Returns:
        是否允许
    """
    if not rules:
        return True

    plat = plat or Platform.current()
    allowed = False
    for rule in rules:
        if rule.matches(plat, features):
            allowed = rule.action == "allow"
    return allowed


def native_classifier(natives: Dict[str, str], plat: Optional[Platform] = None) -> Optional[str]:
    """根据 natives 映射选择当前平台的分类器，不支持时返回 None"""
    plat = plat or Platform.current()
    classifier = natives.get(plat.name)
    if classifier is None:
        return None
    return classifier.replace("${arch}", plat.archbits)
