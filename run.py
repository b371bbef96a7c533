import logging
import os

from controle_compras import create_app
from controle_compras.db import check_connection
from controle_compras.errors import AppError


app = create_app()
logger = logging.getLogger("controle_compras.run")


def main() -> None:
    with app.app_context():
        try:
            check_connection()
        except AppError as exc:
            logger.error("startup_db_check_failed", extra={"error_code": exc.code, "details": exc.details})
            raise SystemExit(1) from exc

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "3000"))
    logger.info("server_starting", extra={"host": host, "port": port, "env": app.config.get("ENV")})
    app.run(host=host, port=port, debug=app.config.get("ENV") == "development")


if __name__ == "__main__":
    main()
