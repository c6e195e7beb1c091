class Templates:
    """Шаблоны для генерации файлов"""

    # Заголовок файла с функциями запросов по умолчанию
    file_header = """# Auto-generated by noapi
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from noapi.runtime import NOTSET, request
"""

    model_imports = [
        "# Auto-generated by noapi",
        "from __future__ import annotations",
        "",
        "from datetime import date, datetime",
        "from enum import Enum",
        "from typing import Any, Dict, List, Literal, Optional, Union",
        "",
        "from pydantic import BaseModel, ConfigDict, Field",
    ]

    index_header = "# Auto-generated by noapi: re-exports of generated models"

    request_call = """return await request(
    {method!r},
    {path!r},
{arguments})"""

    config_file = """# noapi configuration
# swag_url = "https://example.com/v2/api-docs"
# cookie = "SESSION=..."
# swag_file = "./src/api/noapi-swagger-doc.json"
# api_base = "./src/api"
# def_base = "./src/api/models"
# file_header_factory = "my_package.codegen:file_header"
# export_from_index = true
# models_module = ".models"
"""


templates = Templates()
