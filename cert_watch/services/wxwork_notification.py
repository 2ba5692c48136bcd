"""
企业微信群机器人通知服务
"""
import logging

import requests

from ..interfaces import NotifierInterface
from ..models import Severity
from .error_handler import DeliveryError

WXWORK_WEBHOOK_URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send"


class WxworkNotifier(NotifierInterface):
    """企业微信 webhook 通知实现"""

    channel = "wxwork"

    def __init__(self, token: str, timeout: float = 10.0, webhook_url: str = WXWORK_WEBHOOK_URL):
        """
        初始化企业微信通知服务

        Args:
            token: 群机器人 key，为空时不发送
            timeout: 请求超时时间（秒）
            webhook_url: webhook 地址
        """
        self.token = token or ""
        self.timeout = timeout
        self.webhook_url = webhook_url
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_payload(message: str) -> dict:
        """
        构造文本消息体

        Args:
            message: 消息内容

        Returns:
            dict: 请求体
        """
        return {
            "msgtype": "text",
            "text": {
                "content": message
            }
        }

    def send(self, message: str, severity: Severity) -> None:
        """
        发送通知

        Args:
            message: 消息内容
            severity: 通知级别

        Raises:
            DeliveryError: 请求失败或返回非200状态
        """
        if not self.token:
            self.logger.warning("wxwork_token 为空，跳过企业微信通知")
            return

        payload = self.build_payload(message)
        self.logger.debug(f"发送企业微信通知，级别: {severity.value}，内容: {payload}")

        try:
            response = requests.post(
                self.webhook_url,
                params={"key": self.token},
                json=payload,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise DeliveryError(self.channel, f"请求失败: {e}") from e

        if response.status_code != 200:
            raise DeliveryError(self.channel, f"返回状态码异常: {response.status_code}")

        self._check_response_body(response)
        self.logger.info(f"企业微信通知发送成功，级别: {severity.value}")

    def _check_response_body(self, response: requests.Response):
        """
        检查接口返回的错误码

        Args:
            response: 响应对象
        """
        try:
            body = response.json()
        except ValueError:
            self.logger.debug(f"企业微信返回非JSON内容: {response.text}")
            return

        errcode = body.get("errcode", 0) if isinstance(body, dict) else 0
        if errcode:
            raise DeliveryError(self.channel, f"errcode={errcode}, errmsg={body.get('errmsg', '')}")
