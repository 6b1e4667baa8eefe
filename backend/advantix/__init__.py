"""Advantix 代理业务后台"""

__version__ = "1.0.0"
