from .api_routes import init_api_routes

__all__ = ['init_api_routes']
