import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db.database import Base, engine, check_db_connection
from app.models import trips, expenses, settlements  # noqa: F401  registers tables
from app.api.error_handlers import register_error_handlers
from app.api.v1.routes.trips import router as trips_router
from app.api.v1.routes.expenses import router as expenses_router
from app.api.v1.routes.settlements import router as settlements_router
from app.rabbitmq.producer import close_rabbitmq_producer
from app.rabbitmq.setup import init_rabbitmq

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_rabbitmq_producer()


app = FastAPI(
    title="Settlement Service - Trip Balances",
    description="Splits shared trip expenses, computes balances and tracks settlements",
    version="1.0.0",
    lifespan=lifespan
)

register_error_handlers(app)

# Declare exchanges for settlement events (no-op when RabbitMQ is disabled)
init_rabbitmq()

app.include_router(trips_router)
app.include_router(expenses_router)
app.include_router(settlements_router)

@app.get("/")
def read_root():
    return {"message": "Settlement Service API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    database_ok = check_db_connection()
    return {"status": "healthy" if database_ok else "unhealthy", "database": database_ok}
