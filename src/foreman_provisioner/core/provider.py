"""Foreman provider - connection configuration for a Foreman server."""

from functools import cached_property
from typing import Self

from pydantic import BaseModel, ConfigDict, SecretStr

from foreman_provisioner.api.client import Endpoints, ForemanClient
from foreman_provisioner.api.override_value import OverrideValueAPI
from foreman_provisioner.api.smart_class_parameter import SmartClassParameterAPI


class BasicAuth(BaseModel):
    """Username/password authentication for the Foreman API."""

    username: str
    password: SecretStr


class ForemanProvider(BaseModel):
    """Connection configuration for a Foreman server.

    Provide ``host`` and ``auth`` for normal use, or inject a pre-built
    client with :meth:`from_client` (tests, custom sessions).

    Examples:
        provider = ForemanProvider(
            host="https://foreman.company.com",
            auth=BasicAuth(username="admin", password="changeme"),
        )
        provider.override_values.read(parameter_id=7, override_value_id=12)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str | None = None
    auth: BasicAuth | None = None
    verify_ssl: bool = True
    timeout: float | None = None
    endpoints: Endpoints = Endpoints()

    # Injected client (for testing / custom sessions)
    _injected_client: ForemanClient | None = None

    @classmethod
    def from_client(cls, client: ForemanClient) -> Self:
        """Create a provider around an already configured client."""
        provider = cls.model_construct(host=client.host, endpoints=client.endpoints)
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> ForemanClient:
        """Get the Foreman client."""
        if self._injected_client is not None:
            return self._injected_client

        if self.host is None or self.auth is None:
            raise ValueError(
                "Either provide host+auth, or use ForemanProvider.from_client() "
                "to inject a client"
            )

        return ForemanClient(
            self.host,
            auth=(self.auth.username, self.auth.password.get_secret_value()),
            verify_ssl=self.verify_ssl,
            timeout=self.timeout,
            endpoints=self.endpoints,
        )

    @cached_property
    def override_values(self) -> OverrideValueAPI:
        return OverrideValueAPI(self.client)

    @cached_property
    def smart_class_parameters(self) -> SmartClassParameterAPI:
        return SmartClassParameterAPI(self.client, self.override_values)
