"""auth/ -- Identities, session tokens, and the session gate for CarMarket.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, listings/, favorites/, or notify/.
api/ imports from auth/, not the other way around.
"""
