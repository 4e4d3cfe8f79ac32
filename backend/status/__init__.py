# backend/status/__init__.py
# 상태 API 모듈

from .api import router

__all__ = ["router"]
