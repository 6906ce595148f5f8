from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from runfeed.api.auth import router as auth_router
from runfeed.api.recording import router as recording_router
from runfeed.api.activities import router as activities_router
from runfeed.api.notifications import router as notifications_router
from runfeed.db import Base, engine
from runfeed.core.log_setup import setup_logging
# import ensures tables are registered
from runfeed.models.user import User  # noqa: F401
from runfeed.models.auth_token import AuthToken  # noqa: F401
from runfeed.models.activity import Activity, ActivityLike  # noqa: F401
from runfeed.models.comment import Comment  # noqa: F401
from runfeed.models.notification import Notification  # noqa: F401


setup_logging()

app = FastAPI(title="RunFeed")

# Allow CORS for the mobile / web clients
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables on startup
Base.metadata.create_all(bind=engine)

app.include_router(auth_router)
app.include_router(recording_router)
app.include_router(activities_router)
app.include_router(notifications_router)


@app.get("/")
def root():
    return {"message": "RunFeed backend is running"}
