"""邮件通知器"""

import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Dict, Any

import aiosmtplib

from .base import BaseNotifier
from ..models.alert import Alert
from ..utils.exceptions import AlertConfigError, AlertSendError

SEVERITY_ICONS = {
    'info': 'ℹ️',
    'warning': '⚠️',
    'error': '❌',
    'critical': '🚨',
}

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class EmailNotifier(BaseNotifier):
    """通过SMTP发送邮件告警"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)

        # SMTP配置
        self.smtp_server = config.get('smtp_server', '')
        self.smtp_port = config.get('smtp_port', 587)
        self.username = config.get('username', '')
        self.password = config.get('password', '')
        self.use_tls = config.get('use_tls', True)

        # 邮件配置
        self.from_email = config.get('from_email', self.username)
        self.from_name = config.get('from_name', '服务健康监控系统')
        self.to_emails = config.get('to_emails', [])

        if not self.validate_config():
            raise AlertConfigError(f"邮件通知器配置无效: {name}", notifier_name=name)

    def validate_config(self) -> bool:
        if not self.smtp_server:
            self.logger.error(f"邮件通知器 {self.name} 缺少SMTP服务器配置")
            return False

        if not self.from_email or not EMAIL_PATTERN.match(self.from_email):
            self.logger.error(f"邮件通知器 {self.name} 发件人邮箱无效: {self.from_email}")
            return False

        if not self.to_emails:
            self.logger.error(f"邮件通知器 {self.name} 缺少收件人配置")
            return False

        for email in self.to_emails:
            if not EMAIL_PATTERN.match(email):
                self.logger.error(f"邮件通知器 {self.name} 收件人邮箱无效: {email}")
                return False

        return True

    def _create_email_message(self, alert: Alert) -> MIMEMultipart:
        icon = SEVERITY_ICONS.get(alert.severity, '')
        email_msg = MIMEMultipart()
        email_msg['From'] = formataddr((self.from_name, self.from_email))
        email_msg['To'] = ', '.join(self.to_emails)
        email_msg['Subject'] = f"{icon} [{alert.severity.upper()}] {alert.title}"

        body = (
            f"服务健康监控告警通知\n\n"
            f"服务ID: {alert.service_id}\n"
            f"告警类型: {alert.type}\n"
            f"严重程度: {alert.severity}\n"
            f"发生时间: {alert.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"详细信息: {alert.message}\n\n"
            f"---\n此邮件由服务健康监控系统自动发送，请勿回复。\n"
        )
        email_msg.attach(MIMEText(body, 'plain', 'utf-8'))
        return email_msg

    async def _deliver(self, alert: Alert) -> None:
        email_msg = self._create_email_message(alert)

        try:
            await aiosmtplib.send(
                email_msg,
                hostname=self.smtp_server,
                port=self.smtp_port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                timeout=self.get_timeout()
            )
        except aiosmtplib.SMTPException as e:
            raise AlertSendError(f"SMTP发送失败: {e}", notifier_name=self.name, cause=e)
        except OSError as e:
            raise AlertSendError(f"SMTP连接失败: {e}", notifier_name=self.name, cause=e)
