"""
API Backend Module
"""
from .main import app
from .config import settings
from .database import init_database, close_database

__all__ = ['app', 'settings', 'init_database', 'close_database']
