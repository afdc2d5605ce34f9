"""
HTTP client for the fleet management API

FleetClient implements every capability store the maintenance workflow needs
(component state, cluster membership, queues, database copies, topology and
OS control) on top of the fleet management REST gateway.
"""

import os
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from dotenv import load_dotenv

from .exceptions import FleetAPIError, UnreachableError
from .models import (
    ActivationPolicy, Capability, ClusterMembership, ComponentStatus,
    DatabaseCopy, DeliveryClass, NodeInfo,
)
from .stores import (
    ClusterMembershipStore, ComponentStateStore, DatabaseCopyStore,
    FleetTopology, OSControl, QueueStore,
)


class _ComponentStates(ComponentStateStore):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def get(self, node: str, capability: Capability) -> ComponentStatus:
        return self._client.request('GET', f'/nodes/{node}/components/{capability.value}', node=node,
                                    decode=lambda data: ComponentStatus(data['state']))

    def set(self, node: str, capability: Capability, state: ComponentStatus, requester: str) -> None:
        self._client.request('PUT', f'/nodes/{node}/components/{capability.value}',
                             node=node, json={'state': state.value, 'requester': requester})

    def list_states(self, node: str) -> Dict[str, ComponentStatus]:
        return self._client.request('GET', f'/nodes/{node}/components', node=node,
                                    decode=lambda data: {name: ComponentStatus(state) for name, state in data.items()})


class _ClusterMembership(ClusterMembershipStore):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def get(self, node: str) -> ClusterMembership:
        return self._client.request('GET', f'/nodes/{node}/cluster', node=node,
                                    decode=lambda data: ClusterMembership.from_dict(node, data))

    def pause(self, node: str) -> None:
        self._client.request('POST', f'/nodes/{node}/cluster/pause', node=node)

    def resume(self, node: str) -> None:
        self._client.request('POST', f'/nodes/{node}/cluster/resume', node=node)


class _Queues(QueueStore):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def get_depth(self, node: str, exclude_classes: Iterable[DeliveryClass] = ()) -> int:
        params = {}
        excluded = [c.value for c in exclude_classes]
        if excluded:
            params['exclude'] = ','.join(excluded)
        return self._client.request('GET', f'/nodes/{node}/queues', node=node, params=params,
                                    decode=lambda data: int(data.get('depth', 0)))

    def redirect(self, node: str, target: str) -> None:
        self._client.request('POST', f'/nodes/{node}/queues/redirect', node=node, json={'target': target})


class _DatabaseCopies(DatabaseCopyStore):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def list_by_holder(self, node: str) -> List[DatabaseCopy]:
        return self._client.request('GET', f'/nodes/{node}/copies', node=node,
                                    decode=lambda data: [DatabaseCopy.from_dict(item) for item in data])

    def set_activation_policy(self, node: str, policy: ActivationPolicy) -> None:
        self._client.request('PUT', f'/nodes/{node}/activation',
                             node=node, json={'policy': policy.value})

    def set_activation_disabled_and_move_now(self, node: str, enabled: bool) -> None:
        self._client.request('PUT', f'/nodes/{node}/activation',
                             node=node, json={'activation_disabled_and_move_now': enabled})

    def trigger_move(self, node: str) -> None:
        self._client.request('POST', f'/nodes/{node}/copies/move', node=node)

    def dismount(self, copy: DatabaseCopy) -> None:
        self._client.request('POST', f'/databases/{copy.database}/copies/{copy.node}/dismount', node=copy.node)

    def mount(self, copy: DatabaseCopy) -> None:
        self._client.request('POST', f'/databases/{copy.database}/copies/{copy.node}/mount', node=copy.node)

    def set_mount_at_startup(self, copy: DatabaseCopy, enabled: bool) -> None:
        self._client.request('PUT', f'/databases/{copy.database}/copies/{copy.node}',
                             node=copy.node, json={'mount_at_startup': enabled})

    def rebalance(self, node: Optional[str] = None) -> None:
        self._client.request('POST', '/databases/rebalance', node=node,
                             json={'node': node} if node else {})


class _Topology(FleetTopology):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def list_nodes(self) -> List[NodeInfo]:
        return self._client.request('GET', '/nodes',
                                    decode=lambda data: [NodeInfo.from_dict(item) for item in data])


class _OSControl(OSControl):

    def __init__(self, client: 'FleetClient'):
        self._client = client

    def reboot(self, node: str) -> None:
        self._client.request('POST', f'/nodes/{node}/reboot', node=node)

    def shutdown(self, node: str) -> None:
        self._client.request('POST', f'/nodes/{node}/shutdown', node=node)


class FleetClient:
    """Client for the fleet management REST API"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        load_dotenv()

        self.base_url = base_url or os.getenv('FLEET_API_URL')
        if not self.base_url:
            raise ValueError("FLEET_API_URL not found in environment or provided")
        self.base_url = self.base_url.rstrip('/')

        self.timeout = timeout or float(os.getenv('FLEET_API_TIMEOUT', '30'))

        # Auto-disable SSL verification for localhost gateways
        is_localhost = 'localhost' in self.base_url or '127.0.0.1' in self.base_url
        ssl_verify_env = os.getenv('FLEET_SSL_VERIFY', 'true').lower()
        if ssl_verify_env == 'auto':
            self.ssl_verify = not is_localhost
        else:
            self.ssl_verify = ssl_verify_env == 'true'
        if is_localhost and os.getenv('FLEET_SSL_VERIFY') is None:
            self.ssl_verify = False

        if not self.ssl_verify:
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.session = requests.Session()

        self.components = _ComponentStates(self)
        self.cluster = _ClusterMembership(self)
        self.queues = _Queues(self)
        self.copies = _DatabaseCopies(self)
        self.topology = _Topology(self)
        self.os_control = _OSControl(self)

    def request(self, method: str, path: str, node: Optional[str] = None,
                params: Optional[Dict[str, Any]] = None, json: Optional[Any] = None,
                decode: Optional[Callable[[Any], Any]] = None) -> Any:
        """Issue one API call and return the decoded JSON body

        Connection failures and timeouts raise UnreachableError for the node the
        call was about; any other failure raises FleetAPIError. When given,
        decode turns the body into model objects; a payload it cannot read
        (missing keys, unknown enum values, wrong shape) is a FleetAPIError too.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url,
                params=params,
                json=json,
                verify=self.ssl_verify,
                timeout=self.timeout,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise UnreachableError(node, f"fleet API request {method} {path} failed: {e}")
        except requests.exceptions.RequestException as e:
            raise FleetAPIError(f"Fleet API request {method} {path} failed: {e}")

        if response.status_code in (502, 503, 504) and node:
            # The gateway answers but could not reach the node itself
            raise UnreachableError(node, f"gateway returned {response.status_code}")

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise FleetAPIError(f"Fleet API {method} {path}: {e}", status_code=response.status_code)

        if not response.content:
            data = {}
        else:
            try:
                data = response.json()
            except ValueError as e:
                raise FleetAPIError(f"Fleet API {method} {path} returned invalid JSON: {e}")

        if decode is None:
            return data
        try:
            return decode(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise FleetAPIError(f"Fleet API {method} {path} returned an unexpected payload: {type(e).__name__}: {e}")

    def test_connection(self) -> bool:
        """Test the connection to the fleet API"""
        try:
            self.request('GET', '/health')
            return True
        except Exception as e:
            print(f"Connection test failed: {e}")
            return False
