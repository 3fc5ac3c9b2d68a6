# Pydantic request/response models
