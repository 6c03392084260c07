"""通知器测试"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import aiosmtplib
import pytest

from health_guard.alerts.email_notifier import EmailNotifier
from health_guard.alerts.webhook_notifier import WebhookNotifier
from health_guard.models.alert import Alert
from health_guard.utils.exceptions import AlertConfigError


def _alert() -> Alert:
    return Alert(service_id='orders-api', type='availability', severity='critical',
                 title='服务不可用', message='连接被拒绝')


def _mock_post(status: int = 200, body: str = 'ok', post_error: Exception = None):
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=body)

    request_ctx = MagicMock()
    request_ctx.__aenter__ = AsyncMock(return_value=response)
    request_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if post_error is not None:
        session.post = MagicMock(side_effect=post_error)
    else:
        session.post = MagicMock(return_value=request_ctx)

    session_ctx = MagicMock()
    session_ctx.__aenter__ = AsyncMock(return_value=session)
    session_ctx.__aexit__ = AsyncMock(return_value=False)
    return session_ctx, session


class TestWebhookNotifier:
    """Webhook通知器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.notifier = WebhookNotifier('ops', {
            'url': 'https://hooks.example.com/alerts',
            'headers': {'X-Token': 'abc'},
            'timeout': 5
        })

    @pytest.mark.asyncio
    async def test_send_success(self):
        """测试发送成功"""
        alert = _alert()
        session_ctx, session = _mock_post(200)
        with patch('health_guard.alerts.webhook_notifier.aiohttp.ClientSession',
                   return_value=session_ctx):
            result = await self.notifier.send(alert)

        assert result.success is True
        assert result.notifier == 'ops'
        kwargs = session.post.call_args.kwargs
        assert kwargs['json'] == alert.to_payload()
        assert kwargs['headers']['X-Token'] == 'abc'
        assert kwargs['headers']['Content-Type'] == 'application/json'

    @pytest.mark.asyncio
    async def test_send_bad_status(self):
        """测试非2xx响应视为失败，不重试"""
        session_ctx, session = _mock_post(500, 'internal error')
        with patch('health_guard.alerts.webhook_notifier.aiohttp.ClientSession',
                   return_value=session_ctx):
            result = await self.notifier.send(_alert())

        assert result.success is False
        assert '500' in result.error
        assert session.post.call_count == 1

    @pytest.mark.asyncio
    async def test_send_network_errors(self):
        """测试超时和连接错误"""
        for error in (asyncio.TimeoutError(), aiohttp.ClientConnectionError('refused')):
            session_ctx, _ = _mock_post(post_error=error)
            with patch('health_guard.alerts.webhook_notifier.aiohttp.ClientSession',
                       return_value=session_ctx):
                result = await self.notifier.send(_alert())
            assert result.success is False


class TestEmailNotifier:
    """邮件通知器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.notifier = EmailNotifier('mail', {
            'smtp_server': 'smtp.example.com',
            'smtp_port': 587,
            'username': 'monitor@example.com',
            'password': 'secret',
            'to_emails': ['ops@example.com', 'dev@example.com']
        })

    def test_message(self):
        """测试邮件内容"""
        message = self.notifier._create_email_message(_alert())

        assert '[CRITICAL]' in message['Subject']
        assert message['To'] == 'ops@example.com, dev@example.com'
        assert 'monitor@example.com' in message['From']

    def test_invalid_recipient(self):
        """测试收件人地址无效"""
        with pytest.raises(AlertConfigError):
            EmailNotifier('mail', {'smtp_server': 'smtp.example.com',
                                   'from_email': 'monitor@example.com',
                                   'to_emails': ['not-an-email']})

    @pytest.mark.asyncio
    async def test_send(self):
        """测试通过SMTP发送"""
        with patch('health_guard.alerts.email_notifier.aiosmtplib.send',
                   new_callable=AsyncMock) as mock_send:
            result = await self.notifier.send(_alert())

        assert result.success is True
        kwargs = mock_send.await_args.kwargs
        assert kwargs['hostname'] == 'smtp.example.com'
        assert kwargs['port'] == 587
        assert kwargs['start_tls'] is True

    @pytest.mark.asyncio
    async def test_send_failure(self):
        """测试SMTP错误转换为失败结果"""
        with patch('health_guard.alerts.email_notifier.aiosmtplib.send',
                   new_callable=AsyncMock,
                   side_effect=aiosmtplib.SMTPException('relay denied')):
            result = await self.notifier.send(_alert())

        assert result.success is False
        assert 'relay denied' in result.error
