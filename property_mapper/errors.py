import json


class UnknownEnumValueError(ValueError):
    """A county code has no mapping in the shared schema enum."""

    def __init__(self, value, path):
        self.value = value
        self.path = path
        super().__init__(f"Unknown enum value {value}.")

    def to_dict(self):
        return {"type": "error", "message": str(self), "path": self.path}

    def to_json(self):
        return json.dumps(self.to_dict())
