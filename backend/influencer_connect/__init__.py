"""
InfluencerConnect 聊天核心
用户目录、用户搜索、私聊会话解析、消息收发与订阅
"""

__version__ = "0.1.0"
