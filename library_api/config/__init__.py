from library_api.config.config import Config, TestingConfig

__all__ = ['Config', 'TestingConfig']
