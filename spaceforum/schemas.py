from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, StrictInt

from .errors import ValidationError

# Upper bound of a 32-bit INTEGER primary key.
MAX_ID = 2**31 - 1


def require_fields(**fields) -> None:
    """Raise ValidationError naming the first missing or blank field."""
    for name, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field: {name}", field=name)


def parse_category_id(value: Union[int, str, None]) -> int:
    """Accept an int or a string of ASCII digits within the id column range."""
    if isinstance(value, bool):
        raise ValidationError("category_id must be an integer", field="category_id")
    if isinstance(value, int):
        category_id = value
    else:
        text = (value or "").strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationError("category_id must be an integer", field="category_id")
        category_id = int(text)
    if not 1 <= category_id <= MAX_ID:
        raise ValidationError("Unknown category", field="category_id")
    return category_id


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class QuestionCreate(BaseModel):
    """Body of a new question.

    Has no ``user_id``: the author comes from the verified token and unknown
    keys in the body are ignored.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    category_id: Optional[Union[StrictInt, str]] = None


class ErrorResponse(BaseModel):
    error: str
    field: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class UserOut(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserOut


class CategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None


class QuestionOut(BaseModel):
    id: int
    title: str
    content: str
    category_id: int
    user_id: int
    created_at: datetime
    category_name: str
    author: str


class ForumData(BaseModel):
    categories: List[CategoryOut]
    questions: List[QuestionOut]


class PlanetOut(BaseModel):
    id: int
    name: str
    type: str
    moons: int
    distance_au: float


class StarOut(BaseModel):
    id: int
    name: str
    spectral_type: str
    constellation: str
    distance_ly: float


class GalaxyOut(BaseModel):
    id: int
    name: str
    type: str
    distance_mly: float


class ExplorationData(BaseModel):
    planets: List[PlanetOut]
    stars: List[StarOut]
    galaxies: List[GalaxyOut]
