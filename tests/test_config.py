from liquidaciones.config import Settings, app_config, settings


def test_settings_loads():
    assert settings.mariadb_host
    assert settings.netting_max_retries >= 1


def test_database_url_defaults_to_mariadb():
    s = Settings(mariadb_user="u", mariadb_password="p", mariadb_host="db", mariadb_database="liq")
    assert s.database_url == "mysql+aiomysql://u:p@db:3306/liq"


def test_database_url_override():
    s = Settings(database_url_override="sqlite+aiosqlite:///local.db")
    assert s.database_url == "sqlite+aiosqlite:///local.db"


def test_app_config_has_installments():
    assert app_config["installments"]["number_of_payments"] == [1, 2]
    assert app_config["installments"]["first_payment_percentages"] == [25, 50, 100]


def test_app_config_has_promotion_types():
    assert "Cashback" in app_config["promotions"]["types"]
    assert app_config["units"]["primary_type"] == "DEPARTAMENTO"
