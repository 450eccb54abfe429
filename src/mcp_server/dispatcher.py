"""Request dispatcher for the Confluence MCP tools and resources.

The dispatcher owns the closed table of tools. For each call it validates the
arguments against the tool's schema, runs the handler against the API wrapper
and wraps the outcome in a single text block. It never raises past its own
boundary: every failure becomes a readable error text in the tool result.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import pydantic
from mcp import types

from src.confluence_client.errors import (
    ConfigurationError,
    ConfluenceMCPError,
    ValidationError,
)
from src.content_converter import FORMAT_GUIDE, validate_or_convert
from .context import ServerContext
from .schemas import (
    ToolArguments,
    SearchConfluenceArgs,
    SearchPagesArgs,
    GetRecentPagesArgs,
    GetPageArgs,
    GetSpaceArgs,
    ListSpacesArgs,
    CreatePageArgs,
    UpdatePageArgs,
    SetupConfluenceArgs,
)

logger = logging.getLogger(__name__)

SUCCESS_PREFIX = "✅"
ERROR_PREFIX = "❌"

UPDATE_EXPAND = ["body.storage", "version", "space"]
RECENT_PAGES_RESOURCE_LIMIT = 10

SPACES_URI = "confluence://spaces"
RECENT_PAGES_URI = "confluence://recent-pages"
USER_URI = "confluence://user"
FORMAT_GUIDE_URI = "confluence://format-guide"


@dataclass
class ToolSpec:
    """One entry of the dispatch table."""
    name: str
    description: str
    arguments: Type[ToolArguments]
    handler: Callable[[Any], str]


@dataclass
class ResourceSpec:
    uri: str
    name: str
    description: str
    mime_type: str
    reader: Callable[[], str]


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _format_validation_error(error: pydantic.ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get('loc', ())) or "arguments"
        problems.append(f"{location}: {item.get('msg')}")
    return "Invalid arguments - " + "; ".join(problems)


class RequestDispatcher:
    """Validates and routes MCP tool calls and resource reads.

    Example:
        >>> dispatcher = RequestDispatcher(ServerContext(ConfigStore()))
        >>> blocks = dispatcher.call_tool("search_confluence", {"query": "type=page"})
        >>> blocks[0].text.startswith("{")
        True
    """

    def __init__(self, context: ServerContext):
        self.context = context
        self.tools: Dict[str, ToolSpec] = {
            spec.name: spec for spec in self._build_tools()
        }
        self.resources: Dict[str, ResourceSpec] = {
            spec.uri: spec for spec in self._build_resources()
        }

    def _build_tools(self) -> List[ToolSpec]:
        return [
            ToolSpec(
                "search_confluence",
                "Search Confluence content using CQL (Confluence Query Language)",
                SearchConfluenceArgs,
                self._search_confluence,
            ),
            ToolSpec(
                "search_pages",
                "Search Confluence pages by title or content",
                SearchPagesArgs,
                self._search_pages,
            ),
            ToolSpec(
                "get_recent_pages",
                "Retrieve recently modified pages",
                GetRecentPagesArgs,
                self._get_recent_pages,
            ),
            ToolSpec(
                "get_page",
                "Retrieve a specific Confluence page",
                GetPageArgs,
                self._get_page,
            ),
            ToolSpec(
                "get_space",
                "Retrieve information about a Confluence space",
                GetSpaceArgs,
                self._get_space,
            ),
            ToolSpec(
                "list_spaces",
                "List all available Confluence spaces",
                ListSpacesArgs,
                self._list_spaces,
            ),
            ToolSpec(
                "create_page",
                "Create a new Confluence page. Content must be Confluence storage "
                "format (XHTML); Markdown and wiki markup are rejected. "
                f"See the {FORMAT_GUIDE_URI} resource.",
                CreatePageArgs,
                self._create_page,
            ),
            ToolSpec(
                "update_page",
                "Update an existing Confluence page. Title and content are optional "
                "and default to the current values. Content must be Confluence "
                "storage format (XHTML).",
                UpdatePageArgs,
                self._update_page,
            ),
            ToolSpec(
                "setup_confluence",
                "Configure or reconfigure the Confluence connection",
                SetupConfluenceArgs,
                self._setup_confluence,
            ),
        ]

    def _build_resources(self) -> List[ResourceSpec]:
        return [
            ResourceSpec(
                SPACES_URI,
                "Confluence Spaces",
                "List of all available Confluence spaces",
                "application/json",
                lambda: to_json(self.context.ensure_configured().get_spaces()),
            ),
            ResourceSpec(
                RECENT_PAGES_URI,
                "Recent Pages",
                "Recently updated pages",
                "application/json",
                lambda: to_json(
                    self.context.ensure_configured().get_recent_pages(
                        RECENT_PAGES_RESOURCE_LIMIT
                    )
                ),
            ),
            ResourceSpec(
                USER_URI,
                "Current User",
                "Information about the current user",
                "application/json",
                lambda: to_json(self.context.ensure_configured().get_current_user()),
            ),
            ResourceSpec(
                FORMAT_GUIDE_URI,
                "Storage Format Guide",
                "How to write page content in Confluence storage format",
                "text/markdown",
                lambda: FORMAT_GUIDE,
            ),
        ]

    def list_tools(self) -> List[types.Tool]:
        return [
            types.Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.arguments.input_schema(),
            )
            for spec in self.tools.values()
        ]

    def list_resources(self) -> List[types.Resource]:
        return [
            types.Resource(
                uri=spec.uri,
                name=spec.name,
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in self.resources.values()
        ]

    def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]]
    ) -> List[types.TextContent]:
        """Run one tool call and wrap the outcome in a text block.

        Args:
            name: Tool name
            arguments: Raw argument object from the client

        Returns:
            A single TextContent with the result or a prefixed error message
        """
        try:
            text = self._dispatch(name, arguments or {})
        except ConfigurationError as e:
            if name == "setup_confluence":
                text = f"{ERROR_PREFIX} Configuration error: {e}"
            else:
                text = f"{ERROR_PREFIX} Error executing tool {name}: {e}"
            logger.warning(f"Tool {name} failed: {e}")
        except ConfluenceMCPError as e:
            text = f"{ERROR_PREFIX} Error executing tool {name}: {e}"
            logger.warning(f"Tool {name} failed: {type(e).__name__}")
        except Exception as e:
            logger.error(f"Unexpected error in tool {name}: {e}", exc_info=True)
            text = f"{ERROR_PREFIX} Error executing tool {name}: {e}"

        return [types.TextContent(type="text", text=text)]

    def _dispatch(self, name: str, arguments: Dict[str, Any]) -> str:
        spec = self.tools.get(name)
        if spec is None:
            raise ValidationError(f"Unknown tool: {name}")

        try:
            args = spec.arguments.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise ValidationError(_format_validation_error(e)) from e

        logger.debug(f"Calling tool {name}")
        return spec.handler(args)

    def read_resource(self, uri: str) -> Tuple[str, str]:
        """Read one resource.

        Returns:
            Tuple of (text, mime_type). Failures come back as a text/plain
            block prefixed with the error glyph.
        """
        uri = uri.rstrip("/")
        spec = self.resources.get(uri)
        if spec is None:
            return f"{ERROR_PREFIX} Error loading resource: Unknown resource: {uri}", "text/plain"

        try:
            return spec.reader(), spec.mime_type
        except ConfluenceMCPError as e:
            logger.warning(f"Resource {uri} failed: {e}")
            return f"{ERROR_PREFIX} Error loading resource: {e}", "text/plain"
        except Exception as e:
            logger.error(f"Unexpected error reading resource {uri}: {e}", exc_info=True)
            return f"{ERROR_PREFIX} Error loading resource: {e}", "text/plain"

    # Tool handlers

    def _search_confluence(self, args: SearchConfluenceArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.search_content(args.query, args.limit, cursor=args.cursor))

    def _search_pages(self, args: SearchPagesArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.search_pages(args.query, args.limit))

    def _get_recent_pages(self, args: GetRecentPagesArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.get_recent_pages(args.limit))

    def _get_page(self, args: GetPageArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.get_page(args.page_id, args.expand))

    def _get_space(self, args: GetSpaceArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.get_space(args.space_key))

    def _list_spaces(self, args: ListSpacesArgs) -> str:
        api = self.context.ensure_configured()
        return to_json(api.get_spaces(args.limit, cursor=args.cursor))

    def _create_page(self, args: CreatePageArgs) -> str:
        api = self.context.ensure_configured()
        body = validate_or_convert(args.content)
        page = api.create_page(args.space_key, args.title, body, args.parent_id)
        return (
            f'{SUCCESS_PREFIX} Page "{args.title}" successfully created!\n\n'
            f"{to_json(page)}"
        )

    def _update_page(self, args: UpdatePageArgs) -> str:
        api = self.context.ensure_configured()
        if args.content is not None:
            new_body: Optional[str] = validate_or_convert(args.content)
        else:
            new_body = None

        current = api.get_page(args.page_id, UPDATE_EXPAND)
        try:
            version = int(current['version']['number'])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(
                f"Page {args.page_id} has no readable version number"
            ) from e

        title = args.title or current.get('title') or ''
        if new_body is None:
            new_body = (
                ((current.get('body') or {}).get('storage') or {}).get('value') or ''
            )
        if not new_body.strip():
            raise ValidationError(
                f"Refusing to update page {args.page_id}: the resulting content "
                f"would be empty. Provide content in storage format."
            )
        space_key = (current.get('space') or {}).get('key')

        page = api.update_page(args.page_id, title, new_body, version, space_key)
        return f"{SUCCESS_PREFIX} Page successfully updated!\n\n{to_json(page)}"

    def _setup_confluence(self, args: SetupConfluenceArgs) -> str:
        if args.action == 'setup':
            if not (args.confluence_base_url and args.confluence_email
                    and args.confluence_api_token):
                raise ConfigurationError(
                    "For setup, confluenceBaseUrl, confluenceEmail and "
                    "confluenceApiToken are required"
                )
            self.context.setup(
                args.confluence_base_url,
                args.confluence_email,
                args.confluence_api_token,
            )
            return f"{SUCCESS_PREFIX} Confluence configuration successfully saved and validated!"

        if args.action == 'update_token':
            if not args.confluence_api_token:
                raise ConfigurationError(
                    "For update_token, confluenceApiToken is required"
                )
            self.context.update_token(args.confluence_api_token)
            return f"{SUCCESS_PREFIX} API token successfully updated!"

        if self.context.validate():
            return f"{SUCCESS_PREFIX} Configuration is valid"
        return f"{ERROR_PREFIX} Configuration is invalid - token may have expired"
