"""
fm_data.data_api.containers - Container field upload and download
==================================================================

Uploads go through the client like any other request, so they are
retried and classified the same way. Downloads fetch the streaming URL
the Data API returns in a container field's value and are not retried.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import requests
from requests.exceptions import InvalidHeader

from fm_data.core.client import INVALID_URL_ERRORS
from fm_data.core.context import OperationContext
from fm_data.core.errors import FileMakerError, NetworkError, RequestTimeoutError, ValidationError, http_reason
from fm_data.core.request import RequestSpec, bearer_header
from fm_data.core.response import ResponseData
from fm_data.core.validators import (
    require_database,
    require_field_name,
    require_file_data,
    require_file_path,
    require_filename,
    require_layout,
    require_record_id,
    require_repetition,
    require_token,
    require_url,
)
from fm_data.data_api.base import DataAPIService

logger = logging.getLogger("fm_data.containers")

UPLOAD_FIELD = "upload"


class ContainerService(DataAPIService):
    """
    Token-scoped container field access.

    Examples
    --------
    >>> containers = ContainerService(client)
    >>> with client.session("Contacts") as token:
    ...     containers.upload_file("Contacts", "Web", "17", "Photo", "acme.png", token)
    ...     url = records.get("17").response.data[0].field_data["Photo"]
    ...     with containers.download(url, token) as r:
    ...         data = r.content
    """

    def _check_target(self, database: str, layout: str, record_id: str, field_name: str, token: str) -> None:
        require_database(database)
        require_layout(layout)
        require_record_id(record_id)
        require_field_name(field_name)
        require_token(token)

    def upload_file(
        self,
        database: str,
        layout: str,
        record_id: str,
        field_name: str,
        file_path: Union[str, Path],
        token: str,
        *,
        repetition: int = 1,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Upload a local file; the part is named after the file."""
        self._check_target(database, layout, record_id, field_name, token)
        require_file_path(str(file_path) if file_path else "")
        require_repetition(repetition)

        path = Path(file_path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ValidationError("file_path", f"failed to read file: {e}") from e
        return self._upload(database, layout, record_id, field_name, path.name, data, token, repetition, ctx)

    def upload_data(
        self,
        database: str,
        layout: str,
        record_id: str,
        field_name: str,
        filename: str,
        data: bytes,
        token: str,
        *,
        repetition: int = 1,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Upload in-memory bytes under ``filename``."""
        self._check_target(database, layout, record_id, field_name, token)
        require_filename(filename)
        require_file_data(data)
        require_repetition(repetition)
        return self._upload(database, layout, record_id, field_name, filename, data, token, repetition, ctx)

    def _upload(
        self,
        database: str,
        layout: str,
        record_id: str,
        field_name: str,
        filename: str,
        data: bytes,
        token: str,
        repetition: int,
        ctx: Optional[OperationContext],
    ) -> ResponseData:
        spec = RequestSpec(
            method="POST",
            path=self._path(
                "databases", database, "layouts", layout,
                "records", record_id, "containers", field_name, repetition,
            ),
            files={UPLOAD_FIELD: (filename, data)},
        ).with_bearer(token)
        logger.debug("uploading %s (%d bytes) to %s[%d]", filename, len(data), field_name, repetition)
        return self._execute(spec, ctx, "upload_container")

    def download(
        self,
        url: str,
        token: Optional[str] = None,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> requests.Response:
        """
        Open a streaming download of container data.

        Parameters
        ----------
        url : str
            Absolute URL from the container field value
        token : str, optional
            Session token, sent as Bearer when given

        Returns
        -------
        requests.Response
            Open, streaming response; close it (or use it as a context
            manager) when done

        Raises
        ------
        FileMakerError
            The server answered with status >= 400
        NetworkError, RequestTimeoutError
            The request could not be completed
        """
        require_url(url)
        ctx = ctx or OperationContext.background()
        ctx.raise_if_done()

        cfg = self.client.config
        headers = {"User-Agent": f"{cfg.user_agent} (fmdata/{cfg.version})"}
        if token:
            headers.update(bearer_header(token))

        try:
            r = self.client.http.get(
                url,
                headers=headers,
                stream=True,
                timeout=self.client._timeout(cfg, ctx),
                verify=cfg.http.verify,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(f"download timed out: {e}") from e
        except INVALID_URL_ERRORS as e:
            raise ValidationError("url", f"invalid download URL {url!r}: {e}") from e
        except InvalidHeader as e:
            raise ValidationError("headers", f"invalid request header: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"failed to download file: {e}") from e

        if r.status_code >= 400:
            r.close()
            raise FileMakerError(message=http_reason(r.status_code), http_status=r.status_code)
        return r
