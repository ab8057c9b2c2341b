from __future__ import annotations

import logging
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from passlib.context import CryptContext
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, create_engine, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import Session, relationship, sessionmaker

from .history_insights import compute_diagnostic_stats, period_start, summarize_emotions
from .info_library import ARTICLES, format_tiers, parse_tiers, slugify
from .recommendations import BREATHING_EXERCISES, get_exercise, parse_stress_level, recommend
from .stress_catalog import HOLMES_RAHE_EVENTS, build_catalog, order_for_questionnaire, parse_category
from .stress_engine import (
    CatalogUnavailable,
    DiagnosticResult,
    DiagnosticSubmission,
    EventCategory,
    InvalidSubmission,
    RiskTier,
    StressEvent,
    score_submission,
)

APP_VERSION = "1.0.0"
REPO_ROOT = Path(__file__).resolve().parents[3]
load_dotenv(REPO_ROOT / ".env")

logger = logging.getLogger("cesizen")


def resolve_db_path() -> str:
    db_env = (os.getenv("CESIZEN_DB_PATH") or os.getenv("DB_PATH") or "").strip()
    db_path = Path(db_env) if db_env else (REPO_ROOT / "cesizen.db")
    if not db_path.is_absolute():
        db_path = REPO_ROOT / db_path
    return str(db_path)


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


def admin_emails() -> set:
    return {email.lower() for email in env_list("CESIZEN_ADMIN_EMAILS")}


def strict_event_ids() -> bool:
    return env_flag("CESIZEN_STRICT_EVENT_IDS")


DB_PATH = resolve_db_path()
DATABASE_URL = f"sqlite:///{DB_PATH}"
SECRET_KEY = os.getenv("CESIZEN_SECRET_KEY", "CHANGE_ME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("CESIZEN_TOKEN_MINUTES", str(60 * 24)))
AUTH_COOKIE_NAME = "authToken"

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    diagnostics = relationship("Diagnostic", back_populates="user", cascade="all, delete-orphan")
    emotion_entries = relationship("EmotionEntry", back_populates="user", cascade="all, delete-orphan")


class DiagnosticEvent(Base):
    __tablename__ = "stress_events"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=False, default="")
    weight = Column(Integer, nullable=False)
    category = Column(String, nullable=False, default=EventCategory.AUTRE.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Diagnostic(Base):
    __tablename__ = "user_diagnostics"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total_score = Column(Integer, nullable=False)
    risk_tier = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="diagnostics")
    selections = relationship(
        "DiagnosticSelection",
        back_populates="diagnostic",
        cascade="all, delete-orphan",
        order_by="DiagnosticSelection.position",
    )


class DiagnosticSelection(Base):
    __tablename__ = "user_diagnostic_events"

    diagnostic_id = Column(Integer, ForeignKey("user_diagnostics.id"), primary_key=True)
    event_id = Column(Integer, primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    label = Column(String, nullable=False)
    weight = Column(Integer, nullable=False)
    category = Column(String, nullable=False)

    diagnostic = relationship("Diagnostic", back_populates="selections")


class Emotion(Base):
    __tablename__ = "emotions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False)
    icon = Column(String, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)


class EmotionEntry(Base):
    __tablename__ = "emotion_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    emotion_id = Column(Integer, ForeignKey("emotions.id"), nullable=False)
    intensity = Column(Integer, nullable=False)
    notes = Column(String, nullable=True)
    entry_date = Column(Date, default=date.today, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="emotion_entries")
    emotion = relationship("Emotion")


class InfoResource(Base):
    __tablename__ = "info_resources"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    summary = Column(String, nullable=False, default="")
    content = Column(String, nullable=False)
    category = Column(String, nullable=True)
    tiers = Column(String, nullable=False, default="")
    is_published = Column(Boolean, default=True, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    role: str
    created_at: datetime


class StressEventResponse(BaseModel):
    id: int
    label: str
    description: str
    weight: int
    category: str


class DiagnosticQuestionsResponse(BaseModel):
    events: List[StressEventResponse]


class DiagnosticSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_event_ids: List[int] = Field(..., alias="selectedEventIds")


class SelectedEventResponse(BaseModel):
    id: int
    label: str
    weight: int
    category: str


class DiagnosticResultResponse(BaseModel):
    result_id: Optional[int] = None
    total_score: int
    risk_tier: str
    risk_label: str
    interpretation: str
    selected_events: List[SelectedEventResponse]
    events_count: int
    created_at: datetime


class DiagnosticStatsResponse(BaseModel):
    total_diagnostics: int
    average_score: Optional[float] = None
    average_events_count: int
    level_distribution: Dict[str, int]
    most_frequent_level: Optional[str] = None
    recent_trend: str
    last_diagnostic_date: Optional[str] = None


class ConfigureEventItem(BaseModel):
    id: Optional[int] = None
    label: str = Field(..., min_length=1)
    weight: int = Field(..., gt=0)
    description: Optional[str] = None
    category: Optional[EventCategory] = None


class ConfigureEventsRequest(BaseModel):
    events: List[ConfigureEventItem]


class ConfigureEventsResponse(BaseModel):
    message: str
    created: int
    updated: int
    skipped_ids: List[int]
    events: List[StressEventResponse]


class RecommendationItem(BaseModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    path: str


class RecommendationsResponse(BaseModel):
    stress_level: str
    recommendations: List[RecommendationItem]


class InfoResourceSummary(BaseModel):
    id: int
    title: str
    slug: str
    summary: str
    category: Optional[str] = None
    tiers: List[str]


class InfoResourceResponse(InfoResourceSummary):
    content: str
    is_published: bool
    updated_at: datetime


class InfoListResponse(BaseModel):
    resources: List[InfoResourceSummary]


class InfoResourceWrite(BaseModel):
    id: Optional[int] = None
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    slug: Optional[str] = None
    summary: Optional[str] = None
    category: Optional[str] = None
    tiers: List[RiskTier] = Field(default_factory=list)
    is_published: bool = True


class EmotionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    color: str = "#6B7280"
    icon: Optional[str] = None


class EmotionResponse(BaseModel):
    id: int
    name: str
    color: str
    icon: Optional[str] = None
    is_default: bool


class EmotionEntryCreate(BaseModel):
    emotion_id: int
    intensity: int = Field(..., ge=1, le=10)
    notes: Optional[str] = None
    entry_date: Optional[date] = None


class EmotionEntryUpdate(BaseModel):
    emotion_id: Optional[int] = None
    intensity: Optional[int] = Field(None, ge=1, le=10)
    notes: Optional[str] = None
    entry_date: Optional[date] = None


class EmotionEntryResponse(BaseModel):
    id: int
    emotion_id: int
    emotion_name: str
    emotion_color: str
    intensity: int
    notes: Optional[str] = None
    entry_date: date
    created_at: datetime


class EmotionReportResponse(BaseModel):
    period: str
    start_date: str
    total_entries: int
    summary: List[dict]


app = FastAPI(title="CESIZen API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=env_list("CESIZEN_CORS_ORIGINS") or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


DEFAULT_EMOTIONS = [
    {"name": "Joie", "color": "#FFD700", "icon": "smile"},
    {"name": "Tristesse", "color": "#4169E1", "icon": "frown"},
    {"name": "Colère", "color": "#DC143C", "icon": "angry"},
    {"name": "Peur", "color": "#800080", "icon": "dizzy"},
    {"name": "Surprise", "color": "#FF8C00", "icon": "surprise"},
    {"name": "Dégoût", "color": "#006400", "icon": "sick"},
    {"name": "Fatigue", "color": "#808080", "icon": "tired"},
    {"name": "Anxiété", "color": "#9932CC", "icon": "anxious"},
    {"name": "Calme", "color": "#20B2AA", "icon": "peace"},
    {"name": "Gratitude", "color": "#FFA07A", "icon": "heart"},
]


@app.exception_handler(InvalidSubmission)
async def invalid_submission_handler(request: Request, exc: InvalidSubmission) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "unknown_ids": exc.unknown_ids},
    )


@app.exception_handler(CatalogUnavailable)
async def catalog_unavailable_handler(request: Request, exc: CatalogUnavailable) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Stress event catalog is unavailable."},
    )


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_stress_events(session)
        seed_default_emotions(session)
        seed_info_resources(session)
    finally:
        session.close()


def seed_stress_events(session: Session) -> int:
    existing = {event.label for event in session.query(DiagnosticEvent).all()}
    to_add = []
    for item in HOLMES_RAHE_EVENTS:
        if item["label"] not in existing:
            to_add.append(DiagnosticEvent(
                label=item["label"],
                description=item["description"],
                weight=item["weight"],
                category=item["category"],
            ))
    if to_add:
        session.add_all(to_add)
        session.commit()
        logger.info("Seeded %d Holmes-Rahe stress events", len(to_add))
    return len(to_add)


def seed_default_emotions(session: Session) -> int:
    existing = {
        emotion.name
        for emotion in session.query(Emotion).filter(Emotion.is_default.is_(True)).all()
    }
    to_add = [
        Emotion(name=item["name"], color=item["color"], icon=item["icon"], is_default=True)
        for item in DEFAULT_EMOTIONS
        if item["name"] not in existing
    ]
    if to_add:
        session.add_all(to_add)
        session.commit()
    return len(to_add)


def seed_info_resources(session: Session) -> int:
    existing = {resource.slug for resource in session.query(InfoResource).all()}
    to_add = [
        InfoResource(
            title=item["title"],
            slug=item["slug"],
            summary=item["summary"],
            content=item["content"],
            category=item["category"],
            tiers=format_tiers(item["tiers"]),
        )
        for item in ARTICLES
        if item["slug"] not in existing
    ]
    if to_add:
        session.add_all(to_add)
        session.commit()
        logger.info("Seeded %d info resources", len(to_add))
    return len(to_add)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})


def decode_user(token: Optional[str], db: Session) -> Optional[User]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            return None
    except JWTError:
        return None
    return db.query(User).filter(User.id == int(user_id)).first()


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    user = decode_user(token or request.cookies.get(AUTH_COOKIE_NAME), db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    return decode_user(token or request.cookies.get(AUTH_COOKIE_NAME), db)


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def to_stress_event(row: DiagnosticEvent) -> StressEvent:
    return StressEvent(
        id=row.id,
        label=row.label,
        weight=row.weight,
        category=parse_category(row.category),
        description=row.description or "",
    )


def list_catalog_events(db: Session) -> List[StressEvent]:
    try:
        rows = db.query(DiagnosticEvent).all()
    except SQLAlchemyError as exc:
        logger.exception("Unable to read stress event catalog")
        raise CatalogUnavailable("Stress event catalog could not be read") from exc
    return order_for_questionnaire(to_stress_event(row) for row in rows)


def load_catalog(db: Session) -> Dict[int, StressEvent]:
    return build_catalog(list_catalog_events(db))


def store_diagnostic(db: Session, user_id: int, result: DiagnosticResult) -> int:
    record = Diagnostic(
        user_id=user_id,
        total_score=result.total_score,
        risk_tier=result.risk_tier.value,
        created_at=result.created_at,
    )
    for position, event in enumerate(result.selected_events):
        record.selections.append(DiagnosticSelection(
            event_id=event.id,
            position=position,
            label=event.label,
            weight=event.weight,
            category=event.category.value,
        ))
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Stored diagnostic %s for user %s (score=%s)", record.id, user_id, record.total_score)
    return record.id


def serialize_event(event: StressEvent) -> StressEventResponse:
    return StressEventResponse(
        id=event.id,
        label=event.label,
        description=event.description,
        weight=event.weight,
        category=event.category.value,
    )


def serialize_result(result: DiagnosticResult, result_id: Optional[int]) -> DiagnosticResultResponse:
    return DiagnosticResultResponse(
        result_id=result_id,
        total_score=result.total_score,
        risk_tier=result.risk_tier.value,
        risk_label=result.risk_label,
        interpretation=result.interpretation,
        selected_events=[
            SelectedEventResponse(id=e.id, label=e.label, weight=e.weight, category=e.category.value)
            for e in result.selected_events
        ],
        events_count=len(result.selected_events),
        created_at=result.created_at,
    )


def serialize_diagnostic(record: Diagnostic) -> DiagnosticResultResponse:
    tier = RiskTier(record.risk_tier)
    return DiagnosticResultResponse(
        result_id=record.id,
        total_score=record.total_score,
        risk_tier=tier.value,
        risk_label=tier.label,
        interpretation=tier.interpretation,
        selected_events=[
            SelectedEventResponse(id=s.event_id, label=s.label, weight=s.weight, category=s.category)
            for s in record.selections
        ],
        events_count=len(record.selections),
        created_at=record.created_at,
    )


def get_owned_diagnostic(diagnostic_id: int, user: User, db: Session) -> Diagnostic:
    record = (
        db.query(Diagnostic)
        .filter(Diagnostic.id == diagnostic_id, Diagnostic.user_id == user.id)
        .first()
    )
    if record is None:
        raise HTTPException(status_code=404, detail="Diagnostic not found")
    return record


@app.get("/health")
def health() -> dict:
    db_status = "ok"
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db_status = "error"
    return {"status": "ok", "version": APP_VERSION, "db": db_status}


@app.post("/auth/register", response_model=TokenResponse)
def register_user(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    email = payload.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email is required")
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    if len(payload.password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters.")
    if len(payload.password.encode("utf-8")) > 72:
        raise HTTPException(
            status_code=400,
            detail="Password too long (bcrypt limit is 72 bytes). Use a shorter password.",
        )
    user = User(
        email=email,
        hashed_password=get_password_hash(payload.password),
        display_name=(payload.display_name or "").strip() or None,
        role="admin" if email in admin_emails() else "user",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return TokenResponse(access_token=token_for(user), token_type="bearer")


@app.post("/auth/login", response_model=TokenResponse)
def login_user(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> TokenResponse:
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    token = token_for(user)
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return TokenResponse(access_token=token, token_type="bearer")


@app.post("/auth/logout")
def logout_user(response: Response) -> dict:
    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"status": "ok"}


@app.get("/auth/me", response_model=UserResponse)
def current_user_profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        created_at=user.created_at,
    )


@app.get("/api/diagnostic/questions", response_model=DiagnosticQuestionsResponse)
def diagnostic_questions(db: Session = Depends(get_db)) -> DiagnosticQuestionsResponse:
    return DiagnosticQuestionsResponse(events=[serialize_event(e) for e in list_catalog_events(db)])


@app.post("/api/diagnostic/submit", response_model=DiagnosticResultResponse)
def submit_diagnostic(
    payload: DiagnosticSubmitRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
) -> DiagnosticResultResponse:
    submission = DiagnosticSubmission.from_ids(payload.selected_event_ids, user_id=user.id if user else None)
    catalog = load_catalog(db)
    result = score_submission(submission, catalog, strict_ids=strict_event_ids())
    result_id = None
    if submission.user_id is not None:
        result_id = store_diagnostic(db, submission.user_id, result)
    return serialize_result(result, result_id)


@app.get("/api/diagnostic/history", response_model=List[DiagnosticResultResponse])
def diagnostic_history(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> List[DiagnosticResultResponse]:
    records = (
        db.query(Diagnostic)
        .filter(Diagnostic.user_id == user.id)
        .order_by(Diagnostic.created_at.desc(), Diagnostic.id.desc())
        .limit(limit)
        .all()
    )
    return [serialize_diagnostic(record) for record in records]


@app.get("/api/diagnostic/history/{diagnostic_id}", response_model=DiagnosticResultResponse)
def diagnostic_detail(
    diagnostic_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> DiagnosticResultResponse:
    return serialize_diagnostic(get_owned_diagnostic(diagnostic_id, user, db))


@app.delete("/api/diagnostic/history/{diagnostic_id}")
def delete_diagnostic(
    diagnostic_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> dict:
    record = get_owned_diagnostic(diagnostic_id, user, db)
    db.delete(record)
    db.commit()
    return {"deleted": diagnostic_id}


@app.get("/api/diagnostic/stats", response_model=DiagnosticStatsResponse)
def diagnostic_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> DiagnosticStatsResponse:
    records = (
        db.query(Diagnostic)
        .filter(Diagnostic.user_id == user.id)
        .order_by(Diagnostic.created_at.desc(), Diagnostic.id.desc())
        .all()
    )
    history = [
        {
            "total_score": record.total_score,
            "risk_tier": record.risk_tier,
            "events_count": len(record.selections),
            "created_at": record.created_at,
        }
        for record in records
    ]
    return DiagnosticStatsResponse(**compute_diagnostic_stats(history))


@app.post("/api/diagnostic/configure", response_model=ConfigureEventsResponse)
def configure_diagnostic(
    payload: ConfigureEventsRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
) -> ConfigureEventsResponse:
    if not payload.events:
        raise HTTPException(status_code=400, detail="No events provided")
    created = 0
    updated = 0
    skipped_ids: List[int] = []
    seen_labels = set()
    for item in payload.events:
        label = item.label.strip()
        if not label:
            db.rollback()
            raise HTTPException(status_code=400, detail="Event label cannot be empty")
        if label in seen_labels:
            db.rollback()
            raise HTTPException(status_code=400, detail=f"Duplicate label in request: {label}")
        seen_labels.add(label)
        if item.id is not None:
            row = db.query(DiagnosticEvent).filter(DiagnosticEvent.id == item.id).first()
            if row is None:
                skipped_ids.append(item.id)
                continue
            clash = (
                db.query(DiagnosticEvent)
                .filter(DiagnosticEvent.label == label, DiagnosticEvent.id != item.id)
                .first()
            )
            if clash is not None:
                db.rollback()
                raise HTTPException(status_code=400, detail=f"Event already exists: {label}")
            row.label = label
            row.weight = item.weight
            if item.description is not None:
                row.description = item.description
            if item.category is not None:
                row.category = item.category.value
            updated += 1
        else:
            clash = db.query(DiagnosticEvent).filter(DiagnosticEvent.label == label).first()
            if clash is not None:
                db.rollback()
                raise HTTPException(status_code=400, detail=f"Event already exists: {label}")
            db.add(DiagnosticEvent(
                label=label,
                weight=item.weight,
                description=item.description or "",
                category=(item.category or EventCategory.AUTRE).value,
            ))
            created += 1
    db.commit()
    logger.info("Admin %s configured catalog: %d created, %d updated", admin.id, created, updated)
    return ConfigureEventsResponse(
        message="Questions configured",
        created=created,
        updated=updated,
        skipped_ids=skipped_ids,
        events=[serialize_event(e) for e in list_catalog_events(db)],
    )


@app.get("/api/recommendations", response_model=RecommendationsResponse)
def recommendations(
    stress_level: Optional[str] = Query(None, alias="stressLevel"),
    limit: int = Query(4, ge=1, le=20),
    db: Session = Depends(get_db)
) -> RecommendationsResponse:
    tier = parse_stress_level(stress_level)
    items = recommend(tier, limit=limit, articles=published_articles(db))
    return RecommendationsResponse(
        stress_level=tier.label,
        recommendations=[RecommendationItem(**item) for item in items],
    )


def published_articles(db: Session) -> List[dict]:
    rows = db.query(InfoResource).filter(InfoResource.is_published.is_(True)).all()
    return [
        {"id": row.id, "title": row.title, "summary": row.summary, "tiers": parse_tiers(row.tiers)}
        for row in rows
    ]


def serialize_resource_summary(resource: InfoResource) -> InfoResourceSummary:
    return InfoResourceSummary(
        id=resource.id,
        title=resource.title,
        slug=resource.slug,
        summary=resource.summary or "",
        category=resource.category,
        tiers=[tier.value for tier in parse_tiers(resource.tiers)],
    )


def serialize_resource(resource: InfoResource) -> InfoResourceResponse:
    return InfoResourceResponse(
        **serialize_resource_summary(resource).model_dump(),
        content=resource.content,
        is_published=resource.is_published,
        updated_at=resource.updated_at,
    )


@app.get("/api/info", response_model=InfoListResponse)
def list_info_resources(db: Session = Depends(get_db)) -> InfoListResponse:
    rows = (
        db.query(InfoResource)
        .filter(InfoResource.is_published.is_(True))
        .order_by(InfoResource.id)
        .all()
    )
    return InfoListResponse(resources=[serialize_resource_summary(row) for row in rows])


@app.get("/api/info/{reference}", response_model=InfoResourceResponse)
def get_info_resource(reference: str, db: Session = Depends(get_db)) -> InfoResourceResponse:
    query = db.query(InfoResource)
    if reference.isdigit():
        resource = query.filter(InfoResource.id == int(reference)).first()
    else:
        resource = query.filter(InfoResource.slug == reference).first()
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    if not resource.is_published:
        raise HTTPException(status_code=403, detail="This resource is not published")
    return serialize_resource(resource)


@app.post("/api/info", response_model=InfoResourceResponse)
def save_info_resource(
    payload: InfoResourceWrite,
    response: Response,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
) -> InfoResourceResponse:
    title = payload.title.strip()
    content = payload.content.strip()
    if not title or not content:
        raise HTTPException(status_code=400, detail="Title and content are required")
    slug = slugify(payload.slug or title)
    if not slug:
        raise HTTPException(status_code=400, detail="Title must contain letters or digits")

    clash_query = db.query(InfoResource).filter(InfoResource.slug == slug)
    if payload.id is not None:
        clash_query = clash_query.filter(InfoResource.id != payload.id)
    if clash_query.first() is not None:
        raise HTTPException(status_code=400, detail=f"Slug already in use: {slug}")

    if payload.id is not None:
        resource = db.query(InfoResource).filter(InfoResource.id == payload.id).first()
        if resource is None:
            raise HTTPException(status_code=404, detail="Resource not found")
    else:
        resource = InfoResource(author_id=admin.id)
        db.add(resource)
        response.status_code = status.HTTP_201_CREATED
    resource.title = title
    resource.slug = slug
    resource.content = content
    resource.summary = (payload.summary or "").strip()
    resource.category = payload.category
    resource.tiers = format_tiers(payload.tiers)
    resource.is_published = payload.is_published
    db.commit()
    db.refresh(resource)
    logger.info("Admin %s saved info resource %s (%s)", admin.id, resource.id, slug)
    return serialize_resource(resource)


@app.delete("/api/info/{resource_id}")
def delete_info_resource(
    resource_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
) -> dict:
    resource = db.query(InfoResource).filter(InfoResource.id == resource_id).first()
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    db.delete(resource)
    db.commit()
    logger.info("Admin %s deleted info resource %s", admin.id, resource_id)
    return {"deleted": resource_id}


@app.get("/api/breathing")
def breathing_exercises() -> List[dict]:
    return BREATHING_EXERCISES


@app.get("/api/breathing/{exercise_id}")
def breathing_exercise(exercise_id: int) -> dict:
    exercise = get_exercise(exercise_id)
    if exercise is None:
        raise HTTPException(status_code=404, detail="Exercise not found")
    return exercise


def serialize_emotion(emotion: Emotion) -> EmotionResponse:
    return EmotionResponse(
        id=emotion.id,
        name=emotion.name,
        color=emotion.color,
        icon=emotion.icon,
        is_default=emotion.is_default,
    )


def visible_emotion(emotion_id: int, user: User, db: Session) -> Emotion:
    emotion = (
        db.query(Emotion)
        .filter(
            Emotion.id == emotion_id,
            or_(Emotion.is_default.is_(True), Emotion.owner_id == user.id),
        )
        .first()
    )
    if emotion is None:
        raise HTTPException(status_code=400, detail="Unknown emotion.")
    return emotion


def serialize_entry(entry: EmotionEntry) -> EmotionEntryResponse:
    return EmotionEntryResponse(
        id=entry.id,
        emotion_id=entry.emotion_id,
        emotion_name=entry.emotion.name,
        emotion_color=entry.emotion.color,
        intensity=entry.intensity,
        notes=entry.notes,
        entry_date=entry.entry_date,
        created_at=entry.created_at,
    )


def get_owned_entry(entry_id: int, user: User, db: Session) -> EmotionEntry:
    entry = (
        db.query(EmotionEntry)
        .filter(EmotionEntry.id == entry_id, EmotionEntry.user_id == user.id)
        .first()
    )
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@app.get("/api/emotions", response_model=List[EmotionResponse])
def list_emotions(
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
) -> List[EmotionResponse]:
    query = db.query(Emotion)
    if user is None:
        query = query.filter(Emotion.is_default.is_(True))
    else:
        query = query.filter(or_(Emotion.is_default.is_(True), Emotion.owner_id == user.id))
    return [serialize_emotion(e) for e in query.order_by(Emotion.name).all()]


@app.post("/api/emotions", response_model=EmotionResponse)
def create_emotion(
    payload: EmotionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> EmotionResponse:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Emotion name cannot be empty")
    emotion = Emotion(name=name, color=payload.color, icon=payload.icon, is_default=False, owner_id=user.id)
    db.add(emotion)
    db.commit()
    db.refresh(emotion)
    return serialize_emotion(emotion)


@app.delete("/api/emotions/{emotion_id}")
def delete_emotion(
    emotion_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> dict:
    emotion = (
        db.query(Emotion)
        .filter(Emotion.id == emotion_id, Emotion.owner_id == user.id, Emotion.is_default.is_(False))
        .first()
    )
    if emotion is None:
        raise HTTPException(status_code=404, detail="Emotion not found")
    in_use = db.query(EmotionEntry).filter(EmotionEntry.emotion_id == emotion.id).count()
    if in_use:
        raise HTTPException(status_code=400, detail="Emotion is used by journal entries")
    db.delete(emotion)
    db.commit()
    return {"deleted": emotion_id}


@app.get("/api/emotions/entries", response_model=List[EmotionEntryResponse])
def list_emotion_entries(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> List[EmotionEntryResponse]:
    query = db.query(EmotionEntry).filter(EmotionEntry.user_id == user.id)
    if start_date and end_date:
        query = query.filter(EmotionEntry.entry_date >= start_date, EmotionEntry.entry_date <= end_date)
    entries = query.order_by(EmotionEntry.entry_date.desc(), EmotionEntry.id.desc()).limit(500).all()
    return [serialize_entry(entry) for entry in entries]


@app.post("/api/emotions/entries", response_model=EmotionEntryResponse)
def create_emotion_entry(
    payload: EmotionEntryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> EmotionEntryResponse:
    emotion = visible_emotion(payload.emotion_id, user, db)
    notes = (payload.notes or "").strip() or None
    entry = EmotionEntry(
        user_id=user.id,
        emotion_id=emotion.id,
        intensity=payload.intensity,
        notes=notes,
        entry_date=payload.entry_date or date.today(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return serialize_entry(entry)


@app.put("/api/emotions/entries/{entry_id}", response_model=EmotionEntryResponse)
def update_emotion_entry(
    entry_id: int,
    payload: EmotionEntryUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> EmotionEntryResponse:
    entry = get_owned_entry(entry_id, user, db)
    if payload.emotion_id is not None:
        entry.emotion_id = visible_emotion(payload.emotion_id, user, db).id
    if payload.intensity is not None:
        entry.intensity = payload.intensity
    if payload.notes is not None:
        entry.notes = payload.notes.strip() or None
    if payload.entry_date is not None:
        entry.entry_date = payload.entry_date
    db.commit()
    db.refresh(entry)
    return serialize_entry(entry)


@app.delete("/api/emotions/entries/{entry_id}")
def delete_emotion_entry(
    entry_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> dict:
    entry = get_owned_entry(entry_id, user, db)
    db.delete(entry)
    db.commit()
    return {"deleted": entry_id}


@app.get("/api/emotions/report", response_model=EmotionReportResponse)
def emotion_report(
    period: str = Query("month", pattern="^(week|month|quarter|year)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> EmotionReportResponse:
    start = period_start(period)
    entries = (
        db.query(EmotionEntry)
        .filter(EmotionEntry.user_id == user.id, EmotionEntry.entry_date >= start)
        .all()
    )
    rows = [
        {
            "emotion_name": entry.emotion.name,
            "emotion_color": entry.emotion.color,
            "intensity": entry.intensity,
            "entry_date": entry.entry_date,
        }
        for entry in entries
    ]
    return EmotionReportResponse(
        period=period,
        start_date=start.isoformat(),
        total_entries=len(rows),
        summary=summarize_emotions(rows),
    )
