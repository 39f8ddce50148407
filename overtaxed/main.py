import logging

from fastapi import FastAPI
from overtaxed.core.config import settings
from overtaxed.core.middleware import AuditMiddleware
from overtaxed.api import admin, appeals, cron, deadlines, health, properties

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(cron.router)
app.include_router(deadlines.router)
app.include_router(properties.router)
app.include_router(appeals.router)
app.include_router(admin.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
