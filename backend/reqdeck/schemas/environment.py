from datetime import datetime

from pydantic import Field

from reqdeck.schemas.common import CamelModel, Variable, new_id, utcnow


class Environment(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    description: str = ""
    variables: list[Variable] = Field(default_factory=list)
    is_active: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_variable(self, name: str) -> Variable | None:
        """Case-insensitive lookup among enabled variables, first match wins."""
        wanted = name.lower()
        for variable in self.variables:
            if variable.enabled and variable.key.lower() == wanted:
                return variable
        return None
