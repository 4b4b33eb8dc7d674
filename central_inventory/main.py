from fastapi import FastAPI

from central_inventory.config import settings
from central_inventory.logging_config import configure_logging
from central_inventory.routers import parts_issues, purchase_orders, stock, upstream
from central_inventory.security.actors import install_actor_middleware
from central_inventory.security.headers import install_security_headers

configure_logging(level=settings.log_level.upper(), json_lines=settings.log_json)

app = FastAPI(title='Central Inventory Supply Chain')

install_actor_middleware(app)
install_security_headers(app)

app.include_router(purchase_orders.router)
app.include_router(parts_issues.router)
app.include_router(stock.router)
app.include_router(upstream.router)


@app.get('/health')
def health() -> dict:
    return {'status': 'ok'}
