"""sessions/ -- Login-state storage for the account service.

Two physical stores hold one logical login state: the primary store backs the
session cookie, the token store backs capability tokens. Only
sessions.coordinator.SessionCoordinator writes to them.

Layer rule: sessions/ imports from core/ and auth.models only. It does NOT
import from api/.
"""
