from .codes import RandomCodeGenerator, is_valid_code
from .link_manager import LinkManager

__all__ = ["LinkManager", "RandomCodeGenerator", "is_valid_code"]
