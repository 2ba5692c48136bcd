"""
配置验证服务
"""
import ipaddress
import re
from typing import Dict, List, Any
import logging

from .cert_prober import parse_site
from .error_handler import ProbeError

SUPPORTED_VERSIONS = {1}


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 域名格式验证正则表达式
        self.domain_pattern = re.compile(
            r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$'
        )

    def validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        验证解析后的配置

        Args:
            data: TOML 解析得到的字典

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'total_groups': 0,
            'total_sites': 0
        }

        version = data.get('version', 1)
        if not self._is_int(version) or version not in SUPPORTED_VERSIONS:
            result['errors'].append(f"不支持的配置版本: {version!r}")

        groups = data.get('groups', [])
        if not isinstance(groups, list):
            result['errors'].append("groups 必须是数组")
            groups = []
        elif not groups:
            result['warnings'].append("没有配置任何监控组")

        seen_names = set()
        for index, group in enumerate(groups):
            label = f"groups[{index}]"
            if not isinstance(group, dict):
                result['errors'].append(f"{label} 必须是表")
                continue

            name = group.get('name')
            if isinstance(name, str) and name.strip():
                label = f"{label} ({name})"
                if name in seen_names:
                    result['errors'].append(f"{label}: 组名重复")
                seen_names.add(name)
            else:
                result['errors'].append(f"{label}: name 必须是非空字符串")

            group_result = self.validate_group(group)
            result['errors'].extend(f"{label}: {error}" for error in group_result['errors'])
            result['warnings'].extend(f"{label}: {warning}" for warning in group_result['warnings'])
            result['total_sites'] += group_result['site_count']

        result['total_groups'] = len(groups)
        result['is_valid'] = not result['errors']
        return result

    def validate_group(self, group: Dict[str, Any]) -> Dict[str, Any]:
        """
        验证单个监控组（不含组名）

        Args:
            group: 监控组配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {'errors': [], 'warnings': [], 'site_count': 0}

        redline = group.get('redline')
        if not self._is_int(redline) or redline < 0:
            result['errors'].append(f"redline 必须是非负整数: {redline!r}")

        interval = group.get('interval', 0)
        if not self._is_int(interval) or interval < 0:
            result['errors'].append(f"interval 必须是非负整数: {interval!r}")

        for key in ('wxwork_token', 'sns_topic_arn'):
            if not isinstance(group.get(key, ""), str):
                result['errors'].append(f"{key} 必须是字符串")

        if not group.get('wxwork_token') and not group.get('sns_topic_arn'):
            result['warnings'].append("未配置通知目标，巡检结果只写入日志")

        sites = group.get('sites', [])
        if not isinstance(sites, list):
            result['errors'].append("sites 必须是字符串数组")
            return result

        result['site_count'] = len(sites)
        for site in sites:
            if not isinstance(site, str) or not self.validate_site(site):
                result['errors'].append(f"站点格式无效: {site!r}")

        return result

    def validate_site(self, site: str) -> bool:
        """
        验证站点格式（host、host:port 或 IP）

        Args:
            site: 站点标识

        Returns:
            bool: 是否有效
        """
        try:
            host, _ = parse_site(site)
        except ProbeError:
            return False

        if len(host) > 253:
            return False

        try:
            ipaddress.ip_address(host)
            return True
        except ValueError:
            pass

        return bool(self.domain_pattern.match(host))

    @staticmethod
    def _is_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def get_configuration_summary(self, result: Dict[str, Any]) -> List[str]:
        """
        生成配置验证摘要

        Args:
            result: validate() 的返回值

        Returns:
            List[str]: 摘要文本行
        """
        lines = ["✅ 配置验证通过" if result['is_valid'] else "❌ 配置验证失败"]

        if result['errors']:
            lines.append("错误:")
            lines.extend(f"  • {error}" for error in result['errors'])

        if result['warnings']:
            lines.append("警告:")
            lines.extend(f"  • {warning}" for warning in result['warnings'])

        lines.append(f"监控组: {result['total_groups']} 个, 站点: {result['total_sites']} 个")
        return lines
