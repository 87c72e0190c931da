"""Library management web service: catalog, accounts and borrowing."""
from library_api.app import create_app

__all__ = ['create_app']
