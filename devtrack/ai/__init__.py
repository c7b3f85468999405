"""AI collaborator: chat transport and daily work analysis."""

from .analyzer import AnalysisResult, DailyWorkAnalyzer, parse_analysis
from .client import ChatClient, ChatMessage, ChatTransport

__all__ = [
    "AnalysisResult",
    "ChatClient",
    "ChatMessage",
    "ChatTransport",
    "DailyWorkAnalyzer",
    "parse_analysis",
]
