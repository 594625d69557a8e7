from prompt_store.models.base import Base
from prompt_store.models.prompt import Prompt, Tag, prompt_tags

__all__ = ["Base", "Prompt", "Tag", "prompt_tags"]
