from abc import ABC, abstractmethod
from pathlib import Path


class IConfigRepository(ABC):
    @property
    @abstractmethod
    def root(self) -> Path:
        raise NotImplementedError

    @abstractmethod
    def load_workspaces(self) -> list[dict[str, str]]:
        raise NotImplementedError

    @abstractmethod
    def save_workspaces(self, workspaces: list[dict[str, str]]) -> None:
        raise NotImplementedError
