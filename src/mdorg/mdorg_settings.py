"""Settings for the Markdown to Org converter."""

from dataclasses import dataclass
import json
import os

from mdorg.mdorg_exceptions import MdOrgSettingsError


@dataclass
class MdOrgSettings:
    """
    Converter and producer settings.
    """
    fence_min_ticks: int = 3
    ollama_url: str = "http://localhost:11434/api/chat"
    ollama_model: str = "llama3.2"
    temperature: float = 0.7
    chunk_size: int = 0  # 0 means convert the whole input in one go

    @classmethod
    def create_default(cls) -> "MdOrgSettings":
        """Create a new MdOrgSettings object with default values."""
        return cls()

    @classmethod
    def load(cls, path: str) -> "MdOrgSettings":
        """
        Load settings from file.

        Args:
            path: Path to the settings file

        Returns:
            MdOrgSettings object with loaded values

        Raises:
            json.JSONDecodeError: If file contains invalid JSON
            MdOrgSettingsError: If a setting has an invalid value
        """
        # Start with default settings
        settings = cls.create_default()

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise MdOrgSettingsError(f"Settings file {path} must contain a JSON object", {'path': path})

        try:
            settings.fence_min_ticks = int(data.get("fenceMinTicks", settings.fence_min_ticks))
            settings.ollama_url = str(data.get("ollamaUrl", settings.ollama_url))
            settings.ollama_model = str(data.get("ollamaModel", settings.ollama_model))
            settings.temperature = float(data.get("temperature", settings.temperature))
            settings.chunk_size = int(data.get("chunkSize", settings.chunk_size))

        except (TypeError, ValueError) as e:
            raise MdOrgSettingsError(f"Invalid value in settings file {path}: {e}", {'path': path}) from e

        settings.validate()
        return settings

    def validate(self) -> None:
        """
        Check that all settings are in range.

        Raises:
            MdOrgSettingsError: If a setting has an invalid value
        """
        if self.fence_min_ticks < 1:
            raise MdOrgSettingsError(
                f"fenceMinTicks must be at least 1, got {self.fence_min_ticks}",
                {'fenceMinTicks': self.fence_min_ticks}
            )

        if self.chunk_size < 0:
            raise MdOrgSettingsError(
                f"chunkSize must not be negative, got {self.chunk_size}",
                {'chunkSize': self.chunk_size}
            )

    def save(self, path: str) -> None:
        """
        Save settings to file.

        Args:
            path: Path to save the settings file

        Raises:
            OSError: If there's an issue creating the directory or writing the file
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        data = {
            "fenceMinTicks": self.fence_min_ticks,
            "ollamaUrl": self.ollama_url,
            "ollamaModel": self.ollama_model,
            "temperature": self.temperature,
            "chunkSize": self.chunk_size,
        }

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4)
