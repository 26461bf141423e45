from __future__ import annotations

from typing import TypeVar, cast

from e2e_harness.core.interfaces.di_interface import IServiceProvider
from e2e_harness.core.layers.base_client import BaseClient

ClientT = TypeVar("ClientT", bound=BaseClient)


class BaseAction:
    """
    Base class for business-level actions.

    Actions compose one or more clients into the operations test cases call
    (e.g. "register and log in a user"). Clients are always obtained through
    `self.client(...)`, i.e. from the container, so their registered
    lifetime applies and tests can substitute them.
    """

    def __init__(self, service_provider: IServiceProvider) -> None:
        self._service_provider = service_provider

    def client(self, client_type: type[ClientT]) -> ClientT:
        return cast(ClientT, self._service_provider.get_required_service(client_type))
