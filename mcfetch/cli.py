"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
import toml
import yaml
from loguru import logger

from mcfetch import loaders
from mcfetch.exceptions import McFetchError
from mcfetch.logger import add_install_log, setup_logger
from mcfetch.models import InstallOptions
from mcfetch.orchestrator import install
from mcfetch.services.diagnostics import diagnose
from mcfetch.services.http_client import HttpClient
from mcfetch.services.version_index import fetch_remote_manifest_index


def load_config(config_path: Optional[str]) -> dict:
    """加载配置文件"""
    if not config_path:
        return {}

    path = Path(config_path)
    if not path.exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()

    if suffix == ".toml":
        return toml.load(config_path)
    elif suffix == ".json":
        return json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        raise click.ClickException(f"不支持的配置文件格式: {suffix}")


def build_options(config_path: Optional[str], **overrides) -> InstallOptions:
    data = load_config(config_path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return InstallOptions.from_dict(data)
    except McFetchError as e:
        raise click.ClickException(str(e))


def run(coro):
    """运行协程，将 McFetchError 转换为 CLI 错误"""
    try:
        return asyncio.run(coro)
    except McFetchError as e:
        logger.error(f"[错误] {e}")
        raise click.ClickException(str(e))


async def _install(version: str, directory: str, side: str, options: InstallOptions):
    async with HttpClient(timeout=options.timeout) as client:
        index = await fetch_remote_manifest_index(options=options, client=client)
        entry = index.get(version)
        if entry is None:
            raise McFetchError(f"未知版本: {version}", context={"version": version})
        manifest = await install(side, entry, directory, options, client)
    return manifest


@click.group()
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version="0.1.0")
def main(debug: bool):
    """McFetch - Minecraft 版本安装与诊断工具"""
    setup_logger(level="DEBUG" if debug else None)


@main.command("install")
@click.argument("version")
@click.option("-d", "--dir", "directory", default=".minecraft", help="游戏根目录")
@click.option("--side", type=click.Choice(["client", "server"]), default="client")
@click.option("--no-checksum", is_flag=True, help="只检查文件是否存在")
@click.option("-c", "--config", "config_path", type=click.Path(), help="配置文件 (toml/json/yaml)")
def install_command(version, directory, side, no_checksum, config_path):
    """安装指定版本"""
    options = build_options(config_path, checksum=False if no_checksum else None)
    handler = add_install_log(directory)
    try:
        manifest = run(_install(version, directory, side, options))
    finally:
        logger.remove(handler)
    logger.success(f"[完成] {manifest.id} 已安装到 {directory}")


@main.command("diagnose")
@click.argument("version")
@click.option("-d", "--dir", "directory", default=".minecraft", help="游戏根目录")
@click.option("--side", type=click.Choice(["client", "server"]), default="client")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出报告")
def diagnose_command(version, directory, side, as_json):
    """诊断本地安装是否完整"""
    report = run(diagnose(version, directory, side))
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    elif report.is_complete:
        click.echo(f"{version}: 安装完整")
    else:
        data = report.to_dict()
        click.echo(f"{version}: 安装不完整")
        for key in ("missing_version_json", "missing_version_jar", "missing_asset_index"):
            if data[key]:
                click.echo(f"  {key}")
        for name in data["missing_libraries"]:
            click.echo(f"  库文件: {name}")
        if data["missing_assets"]:
            click.echo(f"  资源对象: {len(data['missing_assets'])} 个缺失")
    if not report.is_complete:
        raise SystemExit(1)


@main.command("versions")
@click.option(
    "--type", "version_type", default=None, help="只列出指定类型 (release, snapshot ...)"
)
@click.option("-c", "--config", "config_path", type=click.Path(), help="配置文件")
def versions_command(version_type, config_path):
    """列出远程可用版本"""
    options = build_options(config_path)
    index = run(fetch_remote_manifest_index(options=options))
    for entry in index.versions:
        if version_type and entry.type != version_type:
            continue
        click.echo(f"{entry.id}\t{entry.type}")


@main.command("fabric")
@click.argument("game_version")
@click.argument("loader_version")
@click.option("-d", "--dir", "directory", default=".minecraft", help="游戏根目录")
@click.option("-c", "--config", "config_path", type=click.Path(), help="配置文件")
def fabric_command(game_version, loader_version, directory, config_path):
    """安装 Fabric 派生版本清单"""
    options = build_options(config_path)
    handler = add_install_log(directory)
    try:
        version_id = run(loaders.fabric.install(game_version, loader_version, directory, options))
    finally:
        logger.remove(handler)
    click.echo(version_id)


if __name__ == "__main__":
    main()
