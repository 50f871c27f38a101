"""
Where: tests/test_compose_file.py
What: Container names resolved from the compose file.
Why: Polling must target the names compose actually creates.
"""

from adapters.compose_file import load_compose_services, resolve_container_names
from core.domain.models import ContainerNames

COMPOSE = """
services:
  app:
    build: .
    container_name: shop_app
  db:
    image: mysql:8.0
    container_name: shop_db
  phpmyadmin:
    image: phpmyadmin
"""


def test_names_come_from_container_name(tmp_path):
    path = tmp_path / "docker-compose.yml"
    path.write_text(COMPOSE, encoding="utf-8")

    names = resolve_container_names(path)

    assert names == ContainerNames(db="shop_db", app="shop_app")
    assert sorted(load_compose_services(path)) == ["app", "db", "phpmyadmin"]


def test_missing_file_uses_defaults(tmp_path):
    names = resolve_container_names(tmp_path / "docker-compose.yml")

    assert names == ContainerNames(db="laravel_db", app="laravel_app")


def test_service_without_container_name_falls_back_per_service(tmp_path):
    path = tmp_path / "compose.yml"
    path.write_text("services:\n  app:\n    container_name: web\n  db:\n    image: mysql\n", encoding="utf-8")

    names = resolve_container_names(path, defaults=ContainerNames(db="custom_db", app="custom_app"))

    assert names == ContainerNames(db="custom_db", app="web")


def test_custom_service_keys(tmp_path):
    path = tmp_path / "compose.yml"
    path.write_text(
        "services:\n  php:\n    container_name: php_1\n  mysql:\n    container_name: mysql_1\n",
        encoding="utf-8",
    )

    names = resolve_container_names(path, app_service="php", db_service="mysql")

    assert names == ContainerNames(db="mysql_1", app="php_1")


def test_malformed_yaml_is_ignored(tmp_path):
    path = tmp_path / "docker-compose.yml"
    path.write_text("services: [app\n", encoding="utf-8")

    assert load_compose_services(path) == {}
    assert resolve_container_names(path) == ContainerNames()
