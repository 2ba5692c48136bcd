"""
配置加载服务
"""
import os
import tomllib
from typing import Any, Dict
import logging

from ..interfaces import ConfigLoaderInterface
from ..models import WatchConfig, WatchGroup
from .config_validator import ConfigValidator
from .error_handler import ConfigError

DEFAULT_CONFIG_PATH = "config.toml"
EXAMPLE_CONFIG_NAME = "config.example.toml"
TEMPLATE_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), EXAMPLE_CONFIG_NAME)


def default_template() -> str:
    """读取内置的示例配置"""
    with open(TEMPLATE_PATH, encoding="utf-8") as f:
        return f.read()


def generate_default_config(path: str = EXAMPLE_CONFIG_NAME, overwrite: bool = False) -> bool:
    """
    写出示例配置文件

    Args:
        path: 目标路径
        overwrite: 文件已存在时是否覆盖

    Returns:
        bool: 是否写入了文件
    """
    if os.path.exists(path) and not overwrite:
        return False

    with open(path, "w", encoding="utf-8") as f:
        f.write(default_template())
    return True


class ConfigLoader(ConfigLoaderInterface):
    """TOML 配置加载器"""

    def __init__(self, validator: ConfigValidator = None):
        self.validator = validator or ConfigValidator()
        self.logger = logging.getLogger(__name__)

    def load(self, path: str) -> WatchConfig:
        """
        加载并校验配置文件

        Args:
            path: 配置文件路径

        Returns:
            WatchConfig: 配置

        Raises:
            ConfigError: 文件不存在、解析失败或校验不通过
        """
        if not os.path.isfile(path):
            raise ConfigError(f"配置文件不存在: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"配置文件解析失败: {e}") from e
        except OSError as e:
            raise ConfigError(f"配置文件读取失败: {e}") from e

        config = self.from_dict(data)
        self.logger.info(f"成功加载配置 {path}，共 {len(config.groups)} 个监控组")
        return config

    def from_dict(self, data: Dict[str, Any]) -> WatchConfig:
        """
        将解析后的字典转换为配置对象

        Args:
            data: 配置字典

        Returns:
            WatchConfig: 配置
        """
        result = self.validator.validate(data)
        for warning in result['warnings']:
            self.logger.warning(warning)
        if not result['is_valid']:
            raise ConfigError(result['errors'])

        groups = [
            WatchGroup(
                name=group['name'],
                redline=group['redline'],
                sites=tuple(site.strip() for site in group.get('sites', [])),
                wxwork_token=group.get('wxwork_token', ""),
                sns_topic_arn=group.get('sns_topic_arn', ""),
                interval=group.get('interval', 0)
            )
            for group in data.get('groups', [])
        ]
        return WatchConfig(version=data.get('version', 1), groups=groups)
