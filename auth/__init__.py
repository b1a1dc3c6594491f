"""auth/ -- Accounts, credentials and authorization for the account service.

Layer rule: auth/ imports from core/, sessions/ and third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
