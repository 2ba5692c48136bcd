"""
SNS通知服务
"""
import os
import time
from typing import Optional
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotifierInterface
from ..models import Severity
from .error_handler import DeliveryError

SUBJECTS = {
    Severity.INFO: "[cert-watch] All certificates OK",
    Severity.WARNING: "[cert-watch] Certificate problems found",
}


class SNSNotificationService(NotifierInterface):
    """SNS通知服务实现"""

    channel = "sns"

    def __init__(self, topic_arn: str, region_name: Optional[str] = None,
                 timeout: float = 10.0, max_retries: int = 2):
        """
        初始化SNS通知服务

        Args:
            topic_arn: SNS主题ARN，为空时不发送
            region_name: AWS区域名称，如果为None则自动检测
            timeout: 连接及读取超时时间（秒）
            max_retries: 可重试错误的最大重试次数
        """
        self.topic_arn = topic_arn or ""
        self.max_retries = max_retries

        # 自动检测区域
        if region_name:
            self.region_name = region_name
        elif self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        if self.topic_arn:
            try:
                self.sns_client = boto3.client(
                    'sns',
                    region_name=self.region_name,
                    config=Config(
                        connect_timeout=timeout,
                        read_timeout=timeout,
                        retries={'max_attempts': 0}
                    )
                )
                self.logger.debug(f"SNS客户端初始化成功，区域: {self.region_name}")
            except BotoCoreError as e:
                self.logger.error(f"初始化SNS客户端失败: {str(e)}")

    def send(self, message: str, severity: Severity) -> None:
        """
        发送通知

        Args:
            message: 消息内容
            severity: 通知级别

        Raises:
            DeliveryError: 发送失败
        """
        if not self.topic_arn:
            self.logger.warning("sns_topic_arn 为空，跳过SNS通知")
            return

        if not self.sns_client:
            raise DeliveryError(self.channel, "SNS客户端未初始化")

        message_id = self._publish_with_retry(SUBJECTS[severity], message)
        self.logger.info(f"SNS通知发送成功，MessageId: {message_id}")

    def _publish_with_retry(self, subject: str, message: str) -> str:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容

        Returns:
            str: MessageId
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject,
                    Message=message
                )
                return response.get('MessageId')

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < self.max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{self.max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                raise DeliveryError(self.channel, f"{error_code}: {error_message}") from e

            except BotoCoreError as e:
                raise DeliveryError(self.channel, str(e)) from e

        raise DeliveryError(self.channel, "重试次数用尽")

    def _is_retryable_error(self, error_code: str) -> bool:
        """
        判断错误是否可重试

        Args:
            error_code: AWS错误代码

        Returns:
            bool: 是否可重试
        """
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors
