"""HTTP layer of the member service, built on FastAPI.

- **main**: Application factory, lifespan and operational endpoints
- **middleware**: Request context, request logging and exception handlers
- **schemas**: Error response models
- **utils**: orjson responses, pagination headers and handler wrapping
"""
