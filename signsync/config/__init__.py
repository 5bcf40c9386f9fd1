# config/__init__.py
from .config import Config, config

__all__ = ['Config', 'config']
