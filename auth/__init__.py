"""auth/ -- Credential issuance core for the SSO service.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, core/, or storage/. Storage implementations
satisfy the Protocols in auth/protocols.py; api/ and storage/ import from
auth/, not the other way around.
"""
