"""告警模块"""

from .base import BaseNotifier
from .email_notifier import EmailNotifier
from .evaluator import ThresholdEvaluator
from .manager import AlertManager, create_notifier
from .webhook_notifier import WebhookNotifier

__all__ = [
    'BaseNotifier',
    'WebhookNotifier',
    'EmailNotifier',
    'ThresholdEvaluator',
    'AlertManager',
    'create_notifier'
]
