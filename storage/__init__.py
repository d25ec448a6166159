"""storage/ -- Persistence for users and applications.

Layer rule: storage/ imports from auth/ (models and the capability Protocols
it implements). It does NOT import from api/.
"""
