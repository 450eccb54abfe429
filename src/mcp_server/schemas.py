"""Argument schemas for the MCP tools.

Each tool validates its arguments with one of these pydantic models, and the
same model publishes the tool's JSON inputSchema. Field aliases keep the
camelCase names that MCP clients send.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PAGE_CURSOR_DESCRIPTION = "Pagination cursor from the previous response's _links.next (optional)"


class ToolArguments(BaseModel):
    """Base class for tool argument models."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @classmethod
    def input_schema(cls) -> Dict[str, Any]:
        """JSON schema advertised in tools/list."""
        schema = cls.model_json_schema(by_alias=True)
        schema.pop('title', None)
        for prop in schema.get('properties', {}).values():
            prop.pop('title', None)
        return schema


class SearchConfluenceArgs(ToolArguments):
    query: str = Field(
        min_length=1,
        description='CQL search query (e.g. "type=page AND space=DEMO")'
    )
    limit: int = Field(25, ge=1, description='Maximum number of results (default: 25)')
    cursor: Optional[str] = Field(None, description=PAGE_CURSOR_DESCRIPTION)


class SearchPagesArgs(ToolArguments):
    query: str = Field(min_length=1, description='Search term for title or content')
    limit: int = Field(25, ge=1, description='Maximum number of results (default: 25)')


class GetRecentPagesArgs(ToolArguments):
    limit: int = Field(10, ge=1, description='Maximum number of results (default: 10)')


class GetPageArgs(ToolArguments):
    page_id: str = Field(alias='pageId', min_length=1, description='Confluence page ID')
    expand: Optional[List[str]] = Field(
        None,
        description='Fields to expand (e.g. ["body.storage", "version"])'
    )


class GetSpaceArgs(ToolArguments):
    space_key: str = Field(alias='spaceKey', min_length=1, description='Confluence space key')


class ListSpacesArgs(ToolArguments):
    limit: int = Field(25, ge=1, description='Maximum number of results (default: 25)')
    cursor: Optional[str] = Field(None, description=PAGE_CURSOR_DESCRIPTION)


class CreatePageArgs(ToolArguments):
    space_key: str = Field(alias='spaceKey', min_length=1, description='Confluence space key')
    title: str = Field(min_length=1, description='Title of the new page')
    content: str = Field(
        description='Page content in Confluence storage format (XHTML), e.g. <p>Text</p>'
    )
    parent_id: Optional[str] = Field(
        None,
        alias='parentId',
        description='ID of the parent page (optional)'
    )


class UpdatePageArgs(ToolArguments):
    page_id: str = Field(alias='pageId', min_length=1, description='ID of the page to update')
    title: Optional[str] = Field(
        None,
        min_length=1,
        description='New title of the page (optional, keeps the current title)'
    )
    content: Optional[str] = Field(
        None,
        description='New page content in storage format (XHTML) '
                    '(optional, keeps the current content)'
    )


class SetupConfluenceArgs(ToolArguments):
    action: Literal['setup', 'update_token', 'validate'] = Field(
        description='Action: setup (initial configuration), update_token '
                    '(renew token), validate (check configuration)'
    )
    confluence_base_url: Optional[str] = Field(
        None,
        alias='confluenceBaseUrl',
        description='Confluence Base URL, e.g. https://your-domain.atlassian.net (only for setup)'
    )
    confluence_email: Optional[str] = Field(
        None,
        alias='confluenceEmail',
        description='Email address (only for setup)'
    )
    confluence_api_token: Optional[str] = Field(
        None,
        alias='confluenceApiToken',
        min_length=1,
        description='API token (for setup and update_token)'
    )
