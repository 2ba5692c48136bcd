"""
通知渠道选择
"""
import logging
from typing import List

from ..interfaces import NotifierInterface
from ..models import Severity, WatchGroup
from .error_handler import DeliveryError
from .sns_notification import SNSNotificationService
from .wxwork_notification import WxworkNotifier


class FanoutNotifier(NotifierInterface):
    """依次发送到多个通知渠道，任一失败即视为失败"""

    channel = "fanout"

    def __init__(self, notifiers: List[NotifierInterface]):
        self.notifiers = notifiers
        self.logger = logging.getLogger(__name__)

    def send(self, message: str, severity: Severity) -> None:
        failures = []
        for notifier in self.notifiers:
            try:
                notifier.send(message, severity)
            except DeliveryError as e:
                self.logger.error(f"通知渠道发送失败: {e}")
                failures.append(str(e))

        if failures:
            raise DeliveryError(self.channel, "; ".join(failures))


def build_notifier(group: WatchGroup, timeout: float = 10.0) -> NotifierInterface:
    """
    根据监控组配置创建通知服务

    未配置任何通知目标时返回空 token 的企业微信通知器，发送时直接跳过。

    Args:
        group: 监控组
        timeout: 通知请求超时时间（秒）

    Returns:
        NotifierInterface: 通知服务
    """
    notifiers: List[NotifierInterface] = []

    if group.wxwork_token:
        notifiers.append(WxworkNotifier(group.wxwork_token, timeout=timeout))
    if group.sns_topic_arn:
        notifiers.append(SNSNotificationService(group.sns_topic_arn, timeout=timeout))

    if not notifiers:
        return WxworkNotifier("", timeout=timeout)
    if len(notifiers) == 1:
        return notifiers[0]
    return FanoutNotifier(notifiers)
