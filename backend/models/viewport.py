# Camera state; local to one device, never synchronized.
from pydantic import BaseModel


class Viewport(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
