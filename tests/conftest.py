import pytest

from bistro_shared.config import AppConfig
from bistro_shared.db import Store
from bistro_shared.services import menu_service, staff_service, table_service
from bistro_staff.app import create_app

from .helpers import login


@pytest.fixture
def store():
    store = Store.from_url("sqlite://")
    store.create_schema()
    yield store
    store.dispose()


@pytest.fixture
def menu(store):
    mains = menu_service.add_category(store, {"name": "Main dishes", "display_order": 1})
    drinks = menu_service.add_category(store, {"name": "Drinks", "display_order": 2})
    return {
        "mains": mains,
        "drinks": drinks,
        "pho": menu_service.add_menu_item(
            store,
            {
                "name": "Phở Bò",
                "price": 40000,
                "description": "Beef noodle soup",
                "category_id": mains["id"],
            },
        ),
        "bun_cha": menu_service.add_menu_item(
            store,
            {
                "name": "Bún Chả",
                "price": 35000,
                "description": "Grilled pork with vermicelli",
                "category_id": mains["id"],
            },
        ),
        "coffee": menu_service.add_menu_item(
            store,
            {
                "name": "Cà Phê Sữa Đá",
                "price": 20000,
                "description": "Iced milk coffee",
                "category_id": drinks["id"],
            },
        ),
        "sold_out": menu_service.add_menu_item(
            store,
            {
                "name": "Sinh Tố Bơ",
                "price": 30000,
                "category_id": drinks["id"],
                "is_available": False,
            },
        ),
    }


@pytest.fixture
def tables(store):
    return {
        "t1": table_service.add_table(store, {"name": "T1"}),
        "t2": table_service.add_table(store, {"name": "T2", "section": "Terrace", "capacity": 2}),
        "t3": table_service.add_table(store, {"name": "T3"}),
    }


@pytest.fixture
def admin(store):
    return staff_service.add_staff(
        store, {"name": "Admin", "username": "admin", "password": "admin", "role": "admin"}
    )


@pytest.fixture
def waiter(store):
    return staff_service.add_staff(
        store, {"name": "Lan", "username": "lan", "password": "secret", "role": "staff"}
    )


@pytest.fixture
def app_config():
    return AppConfig(
        app_name="bistro-test",
        database_url="sqlite://",
        secret_key="test-secret-key",
        log_level="WARNING",
        debug_mode=False,
        order_transition_policy="standard",
        load_seed_data=True,
        jwt_access_token_expires_hours=1,
        default_report_top_n=10,
        currency="VND",
    )


@pytest.fixture
def app(app_config):
    app_store = Store.from_url(app_config.database_url)
    app = create_app(app_config, store=app_store)
    app.config["TESTING"] = True
    yield app
    app_store.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(client):
    return login(client, "admin", "admin")
