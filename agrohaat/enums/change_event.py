from enum import Enum


class ChangeEvent(str, Enum):
    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"
