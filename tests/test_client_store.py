import threading

import pytest

from client import ApiResult, AuthStatus, ClientStore, SearchFilters, TokenStorage
from client.store import CONNECTION_ERROR_MESSAGE, normalize_service

USER = {"id": "1", "username": "luca_mobile", "email": "luca@artigiani.it"}


def ok(data, status_code=200):
    return ApiResult(success=True, data=data, status_code=status_code)


def failed(status_code, error="Request failed"):
    return ApiResult(success=False, error=error, status_code=status_code)


NETWORK_DOWN = ApiResult(success=False, error="Network error", network_error=True)


def card(service_id, title="Vaso", price="80.00", rating="4.5"):
    return {"id": service_id, "title": title, "price": price, "rating": rating, "reviews": 3,
            "seller": {"username": "luca_mobile"}}


class FakeAPI:
    """Scripted MarketplaceAPI: every call pops the next queued result."""

    def __init__(self):
        self.results = {}
        self.calls = []
        self.closed = False

    def queue(self, method, *results):
        self.results.setdefault(method, []).extend(results)

    def _next(self, method, *args):
        self.calls.append((method, args))
        return self.results[method].pop(0)

    def get_current_user(self):
        return self._next("get_current_user")

    def login(self, email, password):
        return self._next("login", email, password)

    def register(self, email, password, username):
        return self._next("register", email, password, username)

    def get_services(self, query="", params=None):
        return self._next("get_services", query, params)

    def create_service(self, service):
        return self._next("create_service", service)

    def update_service(self, service_id, changes):
        return self._next("update_service", service_id, changes)

    def delete_service(self, service_id):
        return self._next("delete_service", service_id)

    def close(self):
        self.closed = True


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def storage(tmp_path):
    return TokenStorage(tmp_path / "session.json")


@pytest.fixture
def store(api, storage):
    return ClientStore(api, storage)


def service_calls(api):
    return [args for method, args in api.calls if method == "get_services"]


# ---------------------------------------------------------
# Startup token revalidation
# ---------------------------------------------------------

class TestRevalidate:
    def test_no_token_skips_the_server(self, store, api):
        assert store.revalidate() is False
        assert store.status is AuthStatus.UNAUTHENTICATED
        assert api.calls == []

    def test_valid_token_authenticates(self, store, api, storage):
        storage.save("jwt", None)
        api.queue("get_current_user", ok(USER))

        assert store.revalidate() is True
        assert store.is_authenticated
        assert store.user == USER
        assert storage.get_user() == USER

    @pytest.mark.parametrize("status_code", [401, 403, 404])
    def test_rejected_token_is_cleared(self, store, api, storage, status_code):
        storage.save("jwt", USER)
        api.queue("get_current_user", failed(status_code))

        assert store.revalidate() is False
        assert not store.is_authenticated
        assert storage.get_token() is None

    @pytest.mark.parametrize("result", [NETWORK_DOWN, failed(500)])
    def test_unreachable_server_keeps_token(self, store, api, storage, result):
        storage.save("jwt", USER)
        api.queue("get_current_user", result)

        assert store.revalidate() is False
        assert not store.is_authenticated
        assert storage.get_token() == "jwt"

    def test_init_revalidates_then_fetches(self, store, api, storage):
        storage.save("jwt", None)
        api.queue("get_current_user", ok(USER))
        api.queue("get_services", ok([card(1)]))

        store.init()

        assert [method for method, _ in api.calls] == ["get_current_user", "get_services"]
        assert store.is_authenticated
        assert len(store.services) == 1


# ---------------------------------------------------------
# Login / register / logout
# ---------------------------------------------------------

class TestLogin:
    def test_success_stores_token(self, store, api, storage):
        api.queue("login", ok({"token": "jwt", "user": USER}))

        assert store.login("luca@artigiani.it", "segreto") is True
        assert store.is_authenticated
        assert storage.get_token() == "jwt"

    def test_network_failure_does_not_authenticate(self, store, api, storage):
        api.queue("login", NETWORK_DOWN)

        assert store.login("luca@artigiani.it", "segreto") is False
        assert store.status is AuthStatus.UNAUTHENTICATED
        assert store.user is None
        assert store.auth_error == "Network error"
        assert storage.get_token() is None

    def test_wrong_password_reports_server_message(self, store, api):
        api.queue("login", failed(401, "Invalid email or password"))

        assert store.login("luca@artigiani.it", "sbagliata") is False
        assert store.auth_error == "Invalid email or password"

    def test_register_success(self, store, api):
        api.queue("register", ok({"token": "jwt", "user": USER}, status_code=201))

        assert store.register("luca@artigiani.it", "segreto", "luca_mobile") is True
        assert store.user == USER

    def test_logout_clears_everything(self, store, api, storage):
        api.queue("login", ok({"token": "jwt", "user": USER}))
        store.login("luca@artigiani.it", "segreto")

        store.logout()

        assert not store.is_authenticated
        assert storage.get_token() is None

    def test_status_is_pending_while_logging_in(self, store, api):
        seen = []
        store.subscribe(lambda s: seen.append(s.status))
        api.queue("login", ok({"token": "jwt", "user": USER}))

        store.login("luca@artigiani.it", "segreto")

        assert seen == [AuthStatus.PENDING, AuthStatus.AUTHENTICATED]


# ---------------------------------------------------------
# Search, filters and fetch sequencing
# ---------------------------------------------------------

class TestFilters:
    def test_to_params_uses_wire_names(self):
        filters = SearchFilters(category="Ceramica", min_price=10, max_price=100, rating=4)

        assert filters.to_params() == {"category": "Ceramica", "minPrice": 10, "maxPrice": 100, "rating": 4}
        assert filters.active_count == 4
        assert SearchFilters().to_params() == {}

    def test_removing_price_drops_both_bounds(self):
        filters = SearchFilters(category="Ceramica", min_price=10, max_price=100)

        assert filters.without("price") == SearchFilters(category="Ceramica")
        assert filters.without("category") == SearchFilters(min_price=10, max_price=100)

    def test_changes_trigger_a_fetch(self, store, api):
        api.queue("get_services", ok([]), ok([]), ok([]))

        store.set_query("tavolo")
        store.set_filters(SearchFilters(rating=4.5))
        store.remove_filter("rating")

        assert service_calls(api) == [("tavolo", {}), ("tavolo", {"rating": 4.5}), ("tavolo", {})]

    def test_unchanged_values_do_not_fetch(self, store, api):
        api.queue("get_services", ok([]))
        store.set_filters(SearchFilters(category="Ceramica"))

        store.set_filters(SearchFilters(category="Ceramica"))
        store.set_query("")

        assert len(service_calls(api)) == 1


class TestSequencing:
    def test_stale_response_never_overwrites_newer_one(self, api, storage):
        slow_started = threading.Event()
        release_slow = threading.Event()

        class SlowFirstAPI(FakeAPI):
            def get_services(self, query="", params=None):
                if query == "vecchia":
                    slow_started.set()
                    release_slow.wait(timeout=5)
                    return ok([card(1, title="Risultato vecchio")])
                return ok([card(2, title="Risultato nuovo")])

        store = ClientStore(SlowFirstAPI(), storage)
        outcome = []
        worker = threading.Thread(target=lambda: outcome.append(store.set_query("vecchia") or store.services))
        worker.start()
        assert slow_started.wait(timeout=5)

        store.set_query("nuova")
        release_slow.set()
        worker.join(timeout=5)

        assert [s["title"] for s in store.services] == ["Risultato nuovo"]
        assert store.query == "nuova"
        assert store.is_loading is False

    def test_refresh_reports_stale(self, api, storage):
        store = ClientStore(api, storage)

        def reentrant(query="", params=None):
            # A newer fetch starts while this one is in flight
            if len(api.calls) == 0:
                api.calls.append(("get_services", (query, params)))
                store._latest_request += 1
            return ok([card(1)])

        api.get_services = reentrant

        assert store.refresh() is False
        assert store.services == []


class TestFetchFailures:
    def test_first_failure_is_a_connection_error(self, store, api):
        api.queue("get_services", NETWORK_DOWN)

        assert store.refresh() is False
        assert store.connection_error is True
        assert store.error == CONNECTION_ERROR_MESSAGE
        assert store.services == []

    def test_later_failure_keeps_previous_results(self, store, api):
        api.queue("get_services", ok([card(1)]), failed(500, "Internal server error"))

        store.refresh()
        store.refresh()

        assert store.connection_error is False
        assert store.error == "Internal server error"
        assert [s["id"] for s in store.services] == ["1"]

    def test_success_clears_the_error(self, store, api):
        api.queue("get_services", NETWORK_DOWN, ok([card(1)]))

        store.refresh()
        store.refresh()

        assert store.connection_error is False
        assert store.error is None

    def test_demo_data_only_when_opted_in(self, api, storage):
        store = ClientStore(api, storage, demo_services=[card("demo-1", price="120")])
        api.queue("get_services", NETWORK_DOWN)

        store.refresh()

        assert [s["id"] for s in store.services] == ["demo-1"]
        assert store.services[0]["price"] == 120.0
        assert store.error.startswith("Showing demo data")
        assert store.connection_error is False


# ---------------------------------------------------------
# Listing management and observers
# ---------------------------------------------------------

class TestListingManagement:
    @pytest.fixture
    def loaded(self, store, api):
        api.queue("get_services", ok([card(1), card(2)]))
        store.refresh()
        return store

    def test_create_prepends(self, loaded, api):
        api.queue("create_service", ok(card(3, title="Nuovo"), status_code=201))

        loaded.create_service({"title": "Nuovo"})

        assert [s["id"] for s in loaded.services] == ["3", "1", "2"]

    def test_update_replaces_in_place(self, loaded, api):
        api.queue("update_service", ok(card(2, price="99.50")))

        loaded.update_service("2", {"price": 99.5})

        assert loaded.services[1]["price"] == 99.5

    def test_delete_removes(self, loaded, api):
        api.queue("delete_service", ok({"message": "Service deleted successfully"}))

        loaded.delete_service("1")

        assert [s["id"] for s in loaded.services] == ["2"]

    def test_failed_delete_keeps_list(self, loaded, api):
        api.queue("delete_service", failed(403, "You can only modify your own services"))

        result = loaded.delete_service("1")

        assert not result.success
        assert len(loaded.services) == 2


def test_listeners_are_notified_until_unsubscribed(store, api):
    calls = []
    unsubscribe = store.subscribe(lambda s: calls.append(s.is_loading))
    api.queue("get_services", ok([]), ok([]))

    store.refresh()
    unsubscribe()
    store.refresh()

    assert calls == [True, False]


def test_failing_listener_does_not_break_the_store(store, api):
    def boom(_):
        raise RuntimeError("listener bug")

    store.subscribe(boom)
    api.queue("get_services", ok([card(1)]))

    assert store.refresh() is True
    assert len(store.services) == 1


def test_close_drops_listeners_and_closes_api(store, api):
    store.subscribe(lambda s: None)

    store.close()

    assert api.closed


def test_normalize_service_coerces_strings():
    service = normalize_service({"id": 4, "price": "450.00", "rating": "4.5", "reviews_count": "8", "seller": {}})

    assert service["id"] == "4"
    assert service["price"] == 450.0
    assert service["rating"] == 4.5
    assert service["reviews"] == 8
    assert service["seller"]["rating"] == 4.5
