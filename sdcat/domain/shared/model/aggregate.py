from pydantic import BaseModel, ConfigDict


class Aggregate(BaseModel):
    """Mutable domain entity. Assignments are re-validated."""

    model_config = ConfigDict(validate_assignment=True)
