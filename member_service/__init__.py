"""Member Service - shared utility layer of the member profile API.

The member service stores member profiles and traits, publishes change
events on the bus, uploads member photos and serves search-backed lookups.

Architecture Overview:
- **API Layer**: FastAPI application, middleware, pagination and handler wrapping
- **Auth Layer**: Bearer token principals and member authorization predicates
- **Core Layer**: Configuration, exceptions, logging, tracing and parsing helpers
- **Infrastructure Layer**: Entity store, search client, photo storage, event bus
"""
