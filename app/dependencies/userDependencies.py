from typing import Annotated
from uuid import UUID
from fastapi import Depends, Header


def get_current_user_id(
    x_user_id: UUID = Header(..., alias="X-User-Id", description="ID del usuario que ejecuta la operación")
) -> UUID:
    return x_user_id


user_dependency = Annotated[UUID, Depends(get_current_user_id)]
