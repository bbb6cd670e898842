"""Tools router for the tool catalog and tool source configuration.

This module provides REST API endpoints for:
- Listing the aggregated tools and prompts under their qualified names
- Listing configured tool sources with their connection state
- Adding, reconfiguring and removing tool sources at runtime
- Exporting, importing and resetting the whole tool source configuration
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from parley_server.dependencies import get_tool_config_store, get_tool_manager
from parley_server.models.health import ToolSourceStats
from parley_server.models.tools import (
    AddToolSourceRequest,
    PromptInfo,
    PromptListResponse,
    ToolInfo,
    ToolListResponse,
    ToolSourceConfigModel,
    ToolSourceInfo,
    ToolSourceListResponse,
)
from parley_server.tools import ToolSourceConfig, ToolSourceConfigStore, ToolSourceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])

ToolManagerDep = Annotated[ToolSourceManager, Depends(get_tool_manager)]
ConfigStoreDep = Annotated[ToolSourceConfigStore, Depends(get_tool_config_store)]


def _error(status_code: int, code: str, message: str, source_id: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": {"source_id": source_id},
            }
        },
    )


def _validated_config(source_id: str, model: ToolSourceConfigModel) -> ToolSourceConfig:
    config = model.to_config()
    if config.transport is None:
        raise _error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_tool_source",
            "Tool source needs one of command, url or http_url",
            source_id,
        )
    return config


def _source_info(manager: ToolSourceManager, source_id: str, config: ToolSourceConfig) -> ToolSourceInfo:
    client = manager.get_client(source_id)
    return ToolSourceInfo(
        id=source_id,
        transport=config.transport,
        status=manager.get_server_status(source_id).value,
        discovery_state=manager.get_server_discovery_state(source_id).value,
        tool_count=len(client.get_tools()) if client else 0,
        prompt_count=len(client.get_prompts()) if client else 0,
    )


@router.get("", response_model=ToolListResponse, summary="List available tools")
async def list_tools(manager: ToolManagerDep) -> ToolListResponse:
    tools = [
        ToolInfo(
            qualified_name=qualified_name,
            name=tool.name,
            source_id=tool.source_id,
            description=tool.description,
            parameters=tool.parameter_schema,
            trusted=tool.trusted,
        )
        for qualified_name, tool in sorted(manager.get_all_tools().items())
    ]
    return ToolListResponse(tools=tools)


@router.get("/prompts", response_model=PromptListResponse, summary="List available prompts")
async def list_prompts(manager: ToolManagerDep) -> PromptListResponse:
    prompts = [
        PromptInfo(
            qualified_name=qualified_name,
            name=prompt.name,
            source_id=prompt.source_id,
            description=prompt.description,
            arguments=prompt.arguments,
        )
        for qualified_name, prompt in sorted(manager.get_all_prompts().items())
    ]
    return PromptListResponse(prompts=prompts)


@router.get("/servers", response_model=ToolSourceListResponse, summary="List tool sources")
async def list_servers(manager: ToolManagerDep) -> ToolSourceListResponse:
    servers = [
        _source_info(manager, source_id, config)
        for source_id, config in sorted(manager.servers.items())
    ]
    return ToolSourceListResponse(
        servers=servers,
        stats=ToolSourceStats(**manager.get_server_stats()),
    )


@router.post(
    "/servers",
    response_model=ToolSourceInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Add a tool source",
)
async def add_server(
    request: AddToolSourceRequest,
    manager: ToolManagerDep,
    config_store: ConfigStoreDep,
) -> ToolSourceInfo:
    """Connect to a new tool source and save it to the configuration.

    The source is only saved if it could be connected and discovered.

    Raises:
        HTTPException: 400 if the configuration has no transport
        HTTPException: 409 if a source with this id already exists
        HTTPException: 502 if the source cannot be connected or discovered
    """
    source_id = request.id
    if config_store.has_server(source_id) or source_id in manager.servers:
        raise _error(
            status.HTTP_409_CONFLICT,
            "tool_source_exists",
            f"Tool source '{source_id}' already exists",
            source_id,
        )

    config = _validated_config(source_id, request.config)

    try:
        await manager.add_server(source_id, config)
    except ValueError as e:
        raise _error(status.HTTP_400_BAD_REQUEST, "invalid_tool_source", str(e), source_id)
    except Exception as e:
        logger.error(f"Failed to add tool source {source_id}: {e}")
        await manager.remove_server(source_id)
        raise _error(
            status.HTTP_502_BAD_GATEWAY,
            "tool_source_error",
            f"Failed to connect to tool source: {str(e)}",
            source_id,
        )

    config_store.set_server(source_id, config)
    logger.info(f"Added tool source: {source_id}")
    return _source_info(manager, source_id, config)


@router.put("/servers/{source_id}", response_model=ToolSourceInfo, summary="Update a tool source")
async def update_server(
    source_id: str,
    request: ToolSourceConfigModel,
    manager: ToolManagerDep,
    config_store: ConfigStoreDep,
) -> ToolSourceInfo:
    """Save a new configuration for a tool source and reconnect it.

    The new configuration is saved even if the reconnect fails; the source
    then stays disconnected until it is updated again.

    Raises:
        HTTPException: 404 if the source does not exist
        HTTPException: 502 if the source cannot be reconnected
    """
    if not config_store.has_server(source_id) and source_id not in manager.servers:
        raise _error(
            status.HTTP_404_NOT_FOUND,
            "tool_source_not_found",
            f"Tool source '{source_id}' not found",
            source_id,
        )

    config = _validated_config(source_id, request)
    config_store.set_server(source_id, config)

    try:
        await manager.update_server_config(source_id, config)
    except Exception as e:
        logger.error(f"Failed to reconnect tool source {source_id}: {e}")
        raise _error(
            status.HTTP_502_BAD_GATEWAY,
            "tool_source_error",
            f"Failed to connect to tool source: {str(e)}",
            source_id,
        )

    logger.info(f"Updated tool source: {source_id}")
    return _source_info(manager, source_id, config)


@router.delete(
    "/servers/{source_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a tool source",
)
async def delete_server(
    source_id: str,
    manager: ToolManagerDep,
    config_store: ConfigStoreDep,
) -> None:
    if not config_store.has_server(source_id) and source_id not in manager.servers:
        raise _error(
            status.HTTP_404_NOT_FOUND,
            "tool_source_not_found",
            f"Tool source '{source_id}' not found",
            source_id,
        )

    await manager.remove_server(source_id)
    config_store.remove_server(source_id)
    logger.info(f"Removed tool source: {source_id}")


@router.get("/config", summary="Export the tool source configuration")
async def export_config(config_store: ConfigStoreDep) -> Response:
    return Response(content=config_store.export_config(), media_type="application/json")


@router.put("/config", response_model=ToolSourceListResponse, summary="Import a tool source configuration")
async def import_config(
    config: dict[str, Any],
    manager: ToolManagerDep,
    config_store: ConfigStoreDep,
) -> ToolSourceListResponse:
    """Replace the configuration with an exported one and rediscover every source.

    Sources that fail to connect are kept in the configuration and reported
    as disconnected.

    Raises:
        HTTPException: 400 if the document is not a valid configuration
    """
    try:
        config_store.import_config(json.dumps(config))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": {
                    "code": "invalid_tool_config",
                    "message": str(e),
                    "details": {},
                }
            },
        )

    await manager.replace_servers(config_store.get_servers())
    logger.info(f"Imported tool source configuration with {len(manager.servers)} sources")
    return await list_servers(manager)


@router.delete("/config", response_model=ToolSourceListResponse, summary="Reset the tool source configuration")
async def reset_config(
    manager: ToolManagerDep,
    config_store: ConfigStoreDep,
) -> ToolSourceListResponse:
    config_store.reset()
    await manager.replace_servers({})
    logger.info("Tool source configuration reset")
    return await list_servers(manager)
