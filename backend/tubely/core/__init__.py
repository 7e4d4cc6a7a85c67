"""
Core infrastructure for the Tubely backend.

- auth: Bearer token validation and ownership checks
- database: MongoDB async client for the video record store
- errors: Error taxonomy shared by services and the API layer
"""
