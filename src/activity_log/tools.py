"""MCP tool definitions wrapping the activity log engine."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .engine import (
    ActivityLogEngine,
    ActivityLogError,
    NotFoundError,
    ParseError,
    StoreIOError,
    ValidationError,
)
from .models import ActivityType, LogLevel
from .query import SearchField, SearchFilters

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = [t.value for t in ActivityType]
LOG_LEVELS = [lv.value for lv in LogLevel]
SEARCH_FIELDS = [f.value for f in SearchField]


def _file_options(config_prefix: str, config_extension: str, max_depth: int) -> dict[str, dict]:
    return {
        "logFilePrefix": {
            "type": "string",
            "description": f"Log file name prefix (default: {config_prefix})",
        },
        "logFileExtension": {
            "type": "string",
            "description": f"Log file extension (default: {config_extension})",
        },
        "maxDepth": {
            "type": "integer",
            "minimum": 0,
            "maximum": 10,
            "description": f"How many subdirectory levels to search (default: {max_depth}, 0 = this directory only)",
        },
    }


def make_tools(engine: ActivityLogEngine) -> dict[str, dict]:
    """Create MCP tool definitions for the activity log engine.

    Returns:
        Dict mapping tool names to their definitions.
    """
    cfg = engine.config
    file_options = _file_options(cfg.file_prefix, cfg.file_extension, cfg.max_depth)
    logs_dir_schema = {
        "type": "string",
        "description": "Absolute path of the log directory",
    }
    # A configured default directory makes logsDir optional
    required_dir = [] if cfg.logs_dir else ["logsDir"]

    tools = {}

    # ========== log_activity ==========
    tools["log_activity"] = {
        "name": "log_activity",
        "description": (
            "Record an activity log entry with structured data for tracking "
            "development activities, decisions, and context"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "type": {
                    "type": "string",
                    "enum": ACTIVITY_TYPES,
                    "description": "Kind of activity",
                },
                "summary": {
                    "type": "string",
                    "description": "Short summary of the activity",
                },
                "intention": {
                    "type": "string",
                    "description": "Why the activity was performed",
                },
                "context": {
                    "type": "string",
                    "description": "Situation the activity happened in",
                },
                "logsDir": logs_dir_schema,
                "level": {
                    "type": "string",
                    "enum": LOG_LEVELS,
                    "description": "Log level (default: info)",
                },
                "details": {
                    "type": "object",
                    "description": "Arbitrary structured details",
                },
                "parentId": {
                    "type": "string",
                    "description": "ID of the parent activity",
                },
                "sequence": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Order among activities sharing a parent",
                },
                "relatedIds": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "IDs of related activities",
                },
            },
            "required": ["type", "summary", "intention", "context"] + required_dir,
        },
    }

    # ========== get_log_files ==========
    tools["get_log_files"] = {
        "name": "get_log_files",
        "description": "Get a paginated list of available log files in the specified directory",
        "inputSchema": {
            "type": "object",
            "properties": {
                "logsDir": logs_dir_schema,
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": cfg.max_limit,
                    "description": f"Maximum files to return (default: {cfg.default_list_limit})",
                },
                "offset": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Number of files to skip (default: 0)",
                },
                **file_options,
            },
            "required": required_dir,
        },
    }

    # ========== search_logs ==========
    tools["search_logs"] = {
        "name": "search_logs",
        "description": (
            "Search activity logs by type, level, date range, text, parent, "
            "sequence range and related IDs. Results are newest first."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "logsDir": logs_dir_schema,
                "type": {"type": "string", "enum": ACTIVITY_TYPES},
                "level": {"type": "string", "enum": LOG_LEVELS},
                "startDate": {
                    "type": "string",
                    "description": "Start date (YYYY-MM-DD or ISO 8601 timestamp), inclusive",
                },
                "endDate": {
                    "type": "string",
                    "description": "End date (YYYY-MM-DD or ISO 8601 timestamp), inclusive",
                },
                "searchText": {
                    "type": "string",
                    "description": "Text to search for",
                },
                "searchTerms": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Several search terms, any of which may match",
                },
                "searchFields": {
                    "type": "array",
                    "items": {"type": "string", "enum": SEARCH_FIELDS},
                    "description": "Fields to search (default: all)",
                },
                "caseSensitive": {
                    "type": "boolean",
                    "description": "Case-sensitive text search (default: false)",
                },
                "parentId": {"type": "string"},
                "sequenceFrom": {"type": "integer", "minimum": 0},
                "sequenceTo": {"type": "integer", "minimum": 0},
                "relatedId": {
                    "type": "string",
                    "description": "Only records whose relatedIds include this ID",
                },
                "relatedIds": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Only records whose relatedIds include any of these IDs",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": cfg.max_limit,
                    "description": f"Maximum records to return (default: {cfg.default_search_limit})",
                },
                "offset": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Number of records to skip (default: 0)",
                },
                **file_options,
            },
            "required": required_dir,
        },
    }

    return tools


def _enum_arg(enum_cls, value: Optional[str], field_name: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name)


def filters_from_arguments(arguments: dict[str, Any]) -> SearchFilters:
    """Build SearchFilters from search_logs tool arguments."""
    fields = arguments.get("searchFields") or [SearchField.ALL.value]
    return SearchFilters(
        type=_enum_arg(ActivityType, arguments.get("type"), "type"),
        level=_enum_arg(LogLevel, arguments.get("level"), "level"),
        start_date=arguments.get("startDate"),
        end_date=arguments.get("endDate"),
        search_text=arguments.get("searchText"),
        search_terms=tuple(arguments.get("searchTerms") or ()),
        search_fields=tuple(_enum_arg(SearchField, f, "searchFields") for f in fields),
        case_sensitive=bool(arguments.get("caseSensitive", False)),
        parent_id=arguments.get("parentId"),
        sequence_from=arguments.get("sequenceFrom"),
        sequence_to=arguments.get("sequenceTo"),
        related_id=arguments.get("relatedId"),
        related_ids=tuple(arguments.get("relatedIds") or ()),
    )


async def execute_tool(engine: ActivityLogEngine, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute an activity log tool and return the result.

    Args:
        engine: ActivityLogEngine instance
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dict with success status and data or error
    """
    try:
        if name == "log_activity":
            result = engine.log_activity(
                logs_dir=arguments.get("logsDir"),
                type=_enum_arg(ActivityType, arguments.get("type"), "type"),
                summary=arguments.get("summary"),
                intention=arguments.get("intention"),
                context=arguments.get("context"),
                level=_enum_arg(LogLevel, arguments.get("level"), "level"),
                details=arguments.get("details"),
                parent_id=arguments.get("parentId"),
                sequence=arguments.get("sequence"),
                related_ids=arguments.get("relatedIds"),
            )
            return {
                "success": True,
                "logId": result.record.record_id,
                **result.to_dict(),
            }

        elif name == "get_log_files":
            page = engine.get_log_files(
                logs_dir=arguments.get("logsDir"),
                limit=arguments.get("limit"),
                offset=arguments.get("offset") or 0,
                prefix=arguments.get("logFilePrefix"),
                extension=arguments.get("logFileExtension"),
                max_depth=arguments.get("maxDepth"),
            )
            return {
                "success": True,
                "files": [f.to_dict() for f in page.items],
                "totalCount": page.total,
                "offset": page.offset,
                "limit": page.limit,
                "hasMore": page.has_more,
            }

        elif name == "search_logs":
            page = engine.search_logs(
                logs_dir=arguments.get("logsDir"),
                filters=filters_from_arguments(arguments),
                limit=arguments.get("limit"),
                offset=arguments.get("offset") or 0,
                prefix=arguments.get("logFilePrefix"),
                extension=arguments.get("logFileExtension"),
                max_depth=arguments.get("maxDepth"),
            )
            return {
                "success": True,
                "logs": [r.to_dict() for r in page.items],
                "totalCount": page.total,
                "offset": page.offset,
                "limit": page.limit,
                "hasMore": page.has_more,
            }

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
                "error_type": "unknown_tool",
            }

    except ValidationError as e:
        result = {
            "success": False,
            "error": str(e),
            "error_type": "validation_error",
        }
        if e.field:
            result["field"] = e.field
        return result

    except NotFoundError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "not_found",
            "suggestion": "Check that the log directory exists and the path is absolute",
        }

    except ParseError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "parse_error",
        }

    except StoreIOError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "io_error",
        }

    except ActivityLogError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "activity_log_error",
        }

    except Exception as e:
        logger.exception("Unexpected error in tool %s", name)
        return {
            "success": False,
            "error": str(e),
            "error_type": "unexpected_error",
        }
