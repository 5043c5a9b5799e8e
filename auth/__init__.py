"""auth/ -- Authentication and authorization core for OrgAdmin.

passwords.py  -- bcrypt credential hashing / verification
tokens.py     -- signed session tokens (issue, verify, Bearer parsing)
resolver.py   -- Authorization header -> active Identity
permissions.py-- (identity, module, action) -> Allowed / Denied
dependencies.py -- the FastAPI two-stage gate built from the two above
login.py      -- password login and reset flows
store.py      -- users, roles and grants persistence

Layer rule: auth/ imports only from core/ plus third-party libraries.
It does NOT import from api/ or org/. api/ imports from auth/, not the
other way around.
"""
