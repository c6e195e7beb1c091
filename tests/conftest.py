"""
Общие документы и фикстуры для тестов
"""

import copy
import json

import pytest

from noapi.config import EffectiveConfig, StaticHeader
from noapi.internal.parser.openapi import ApiDocument

OPENAPI_DOC = {
    "openapi": "3.0.0",
    "info": {"title": "Users API", "version": "1.0.0"},
    "paths": {
        "/users": {
            "get": {
                "summary": "List users",
                "tags": ["user"],
                "operationId": "listUsers",
                "parameters": [
                    {"name": "page", "in": "query", "schema": {"type": "integer"}},
                    {
                        "name": "X-Request-Id",
                        "in": "header",
                        "description": "Идентификатор запроса",
                        "schema": {"type": "string"},
                    },
                ],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/UserDTO"},
                                }
                            }
                        },
                    }
                },
            },
            "post": {
                "summary": "Create user",
                "tags": ["user"],
                "operationId": "createUser",
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/UserDTO"}
                        }
                    },
                },
                "responses": {
                    "201": {
                        "description": "Created",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/UserDTO"}
                            }
                        },
                    }
                },
            },
        },
        "/users/{id}": {
            "get": {
                "summary": "Get user",
                "tags": ["user"],
                "parameters": [
                    {
                        "name": "id",
                        "in": "path",
                        "required": True,
                        "schema": {"type": "integer"},
                    }
                ],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/UserDTO"}
                            }
                        },
                    },
                    "404": {"description": "Not found"},
                },
            }
        },
        "/orders": {
            "get": {
                "summary": "List orders",
                "tags": ["order"],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/OrderDTO"}
                            }
                        },
                    }
                },
            },
            "post": {
                "summary": "Create order",
                "tags": ["order"],
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "required": ["title"],
                                "properties": {
                                    "title": {"type": "string"},
                                    "count": {"type": "integer"},
                                },
                            }
                        }
                    }
                },
                "responses": {"204": {"description": "Created"}},
            },
        },
    },
    "components": {
        "schemas": {
            "UserDTO": {
                "type": "object",
                "description": "Пользователь",
                "required": ["id", "name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "role": {"$ref": "#/components/schemas/UserRole"},
                    "createdAt": {"type": "string", "format": "date-time"},
                },
            },
            "UserRole": {"type": "string", "enum": ["admin", "user"]},
            "OrderDTO": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "owner": {"$ref": "#/components/schemas/UserDTO"},
                    "labels": {"type": "array", "items": {"type": "string"}},
                },
            },
            "Unused": {"type": "object", "properties": {"x": {"type": "number"}}},
        }
    },
}

SWAGGER_DOC = {
    "swagger": "2.0",
    "info": {"title": "Pets", "version": "1.0"},
    "paths": {
        "/pets/{petId}": {
            "get": {
                "tags": ["pet-controller"],
                "summary": "Find pet",
                "operationId": "getPetUsingGET",
                "parameters": [
                    {"name": "petId", "in": "path", "required": True, "type": "integer"},
                    {"name": "X-Trace", "in": "header", "type": "string"},
                ],
                "responses": {"200": {"schema": {"$ref": "#/definitions/Result«Pet»"}}},
            }
        },
        "/pets": {
            "post": {
                "tags": ["pet-controller"],
                "summary": "Add pet",
                "parameters": [
                    {
                        "in": "body",
                        "name": "pet",
                        "required": True,
                        "schema": {"$ref": "#/definitions/Pet"},
                    }
                ],
                "responses": {"200": {"schema": {"$ref": "#/definitions/Pet"}}},
            }
        },
        "/pets/upload": {
            "post": {
                "tags": ["pet-controller"],
                "summary": "Upload photo",
                "consumes": ["multipart/form-data"],
                "parameters": [
                    {"in": "formData", "name": "file", "type": "file", "required": True},
                    {"in": "formData", "name": "comment", "type": "string"},
                ],
                "responses": {"200": {"description": "OK"}},
            }
        },
    },
    "definitions": {
        "Pet": {
            "type": "object",
            "properties": {
                "id": {"type": "integer", "format": "int64"},
                "name": {"type": "string"},
                "class": {"type": "string"},
                "tags": {"type": "array", "items": {"$ref": "#/definitions/Tag"}},
            },
        },
        "Tag": {"type": "object", "properties": {"name": {"type": "string"}}},
        "Result«Pet»": {
            "type": "object",
            "properties": {
                "code": {"type": "integer"},
                "data": {"$ref": "#/definitions/Pet"},
            },
        },
    },
}

# Две операции из примера поиска
SEARCH_DOC = {
    "openapi": "3.0.0",
    "info": {"title": "Search", "version": "1.0"},
    "paths": {
        "/users": {"get": {"summary": "List users", "tags": ["user"], "responses": {}}},
        "/orders": {"get": {"summary": "List orders", "tags": ["order"], "responses": {}}},
    },
}

# /users GET без ссылок на схемы и отдельная схема UserDTO
E2E_DOC = {
    "openapi": "3.0.0",
    "info": {"title": "E2E", "version": "1.0"},
    "paths": {
        "/users": {
            "get": {
                "summary": "List users",
                "tags": ["user"],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"type": "object"}}
                            }
                        },
                    }
                },
            }
        }
    },
    "components": {
        "schemas": {
            "UserDTO": {
                "type": "object",
                "properties": {"id": {"type": "integer"}, "name": {"type": "string"}},
            }
        }
    },
}


@pytest.fixture
def openapi_document():
    return ApiDocument(copy.deepcopy(OPENAPI_DOC), source="test")


@pytest.fixture
def swagger_document():
    return ApiDocument(copy.deepcopy(SWAGGER_DOC), source="test")


@pytest.fixture
def search_document():
    return ApiDocument(copy.deepcopy(SEARCH_DOC), source="test")


@pytest.fixture
def e2e_document():
    return ApiDocument(copy.deepcopy(E2E_DOC), source="test")


@pytest.fixture
def effective_config(tmp_path):
    api_base = tmp_path / "src" / "api"
    return EffectiveConfig(
        doc_path=str(api_base / "noapi-swagger-doc.json"),
        api_base=str(api_base),
        file_header=StaticHeader("# header\n"),
    )


@pytest.fixture
def local_doc(tmp_path):
    """Локальная копия OPENAPI_DOC по пути кэша по умолчанию"""
    path = tmp_path / "src" / "api" / "noapi-swagger-doc.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(OPENAPI_DOC), encoding="utf-8")
    return path
