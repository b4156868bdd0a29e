"""
McFetch 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, List, Optional, Tuple


class McFetchError(Exception):
    """McFetch 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ManifestError(McFetchError):
    """版本清单相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ManifestNotFound(ManifestError):
    """版本清单不存在或无法读取"""

    def _get_default_code(self) -> str:
        return "E101"


class ManifestParseError(ManifestError):
    """版本清单格式错误"""

    def _get_default_code(self) -> str:
        return "E102"


class ArtifactConflict(McFetchError):
    """两个不同内容的文件被解析到同一路径"""

    def _get_default_code(self) -> str:
        return "E200"


class DownloadError(McFetchError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class NetworkFailure(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class VerificationFailure(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class InstallCancelled(DownloadError):
    """安装任务被取消"""

    def _get_default_code(self) -> str:
        return "E303"


class AggregateInstallError(DownloadError):
    """
    安装任务部分失败

    在所有子任务结束后抛出，列出每个失败的文件及原因。
    """

    def __init__(
        self,
        message: str,
        failures: List[Tuple[str, BaseException]],
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = dict(context or {})
        context.setdefault("failures", [f"{name}: {err}" for name, err in failures])
        super().__init__(message, code, context)
        self.failures = failures

    @property
    def failed_names(self) -> List[str]:
        return [name for name, _ in self.failures]

    def _get_default_code(self) -> str:
        return "E310"


class IncompleteInstallation(McFetchError):
    """安装完成后诊断仍报告缺失文件"""

    def __init__(
        self,
        message: str,
        report: Any = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, context)
        self.report = report

    def _get_default_code(self) -> str:
        return "E320"


class LoaderError(McFetchError):
    """模组加载器相关错误"""

    def _get_default_code(self) -> str:
        return "E400"


class LoaderInstallerFailure(LoaderError):
    """外部安装器进程失败或没有生成版本清单"""

    def __init__(
        self,
        message: str,
        output: str = "",
        returncode: Optional[int] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = dict(context or {})
        context.setdefault("returncode", returncode)
        super().__init__(message, code, context)
        self.output = output
        self.returncode = returncode

    def _get_default_code(self) -> str:
        return "E401"


__all__ = [
    # 基础异常
    "McFetchError",
    # 清单异常
    "ManifestError",
    "ManifestNotFound",
    "ManifestParseError",
    "ArtifactConflict",
    # 下载异常
    "DownloadError",
    "NetworkFailure",
    "VerificationFailure",
    "InstallCancelled",
    "AggregateInstallError",
    "IncompleteInstallation",
    # 加载器异常
    "LoaderError",
    "LoaderInstallerFailure",
]
