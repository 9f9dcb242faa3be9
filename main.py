from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import uvicorn
from datetime import datetime
import os
import logging

from config import get_settings
from database.database import init_db, get_db, check_connection
from database import crud
from models.transaction import Transaction, TransactionCreate, ReportRequest
from models.budget import Budget, BudgetCreate, BudgetUpdate
from models.goal import Goal, GoalCreate, GoalUpdate, GoalContribution
from models.user import UserCreate, UserLogin, UserUpdate, UserProfile
from services.analysis_service import AnalysisService
from services.auth_service import AuthService
from services.budget_service import BudgetService
from services.goal_service import GoalService
from services.exceptions import FinanceError, NotFoundError, UnauthorizedError

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuser de démarrer sans configuration valide, puis connecter la base
    settings.validate()
    init_db()
    logger.info(f"API démarrée (APP_ENV={settings.app_env})")
    yield

app = FastAPI(title="Expense Tracker API", version="2.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
analysis_service = AnalysisService()
auth_service = AuthService(settings)
budget_service = BudgetService()
goal_service = GoalService()

bearer_scheme = HTTPBearer(auto_error=False)

def serialize(schema, obj):
    """Convertit un objet ORM en dict JSON (clés camelCase)"""
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")

def profile_response(user, with_token: bool = True):
    data = serialize(UserProfile, user)
    if with_token:
        data["token"] = auth_service.create_access_token(user.id)
    return data

# ------------------------------
# Error handling
# ------------------------------

def _error_content(request: Request, message):
    # Les routes transactions gardent l'enveloppe {success, error}
    if request.url.path.startswith("/api/transactions"):
        return {"success": False, "error": message}
    return {"message": message}

def _format_validation_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{'.'.join(loc)}: {message}" if loc else message

@app.exception_handler(FinanceError)
async def finance_error_handler(request: Request, exc: FinanceError):
    if exc.status_code >= 500:
        logger.error(f"Erreur serveur sur {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_content(request, exc.message))

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = [_format_validation_error(e) for e in exc.errors()]
    if request.url.path.startswith("/api/transactions"):
        content = {"success": False, "error": messages}
    else:
        content = {"message": "; ".join(messages)}
    return JSONResponse(status_code=400, content=content)

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Erreur base de données sur {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content=_error_content(request, "Server Error"))

# ------------------------------
# Auth dependencies
# ------------------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
):
    """Résout l'utilisateur à partir du jeton Bearer"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authorized, no token")
    user_id = auth_service.decode_access_token(credentials.credentials)
    user = crud.get_user_by_id(db, user_id)
    if not user:
        raise UnauthorizedError("Not authorized, user not found")
    return user

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
):
    """Comme get_current_user, mais None si le jeton est absent ou invalide"""
    if credentials is None:
        return None
    try:
        return get_current_user(credentials, db)
    except UnauthorizedError as e:
        logger.info(f"Jeton ignoré pour une route publique: {e.message}")
        return None

# ------------------------------
# Service
# ------------------------------

@app.get("/")
async def root():
    return {
        "message": "Advanced Expense Tracker API is Running!",
        "version": "2.0",
        "features": [
            "User Authentication",
            "Budget Tracking",
            "Financial Goals",
            "Data Visualization",
            "Advanced Reports"
        ]
    }

@app.get("/health")
@app.get("/api/health")
def health(db: Session = Depends(get_db)):
    return {
        "status": "OK",
        "database": "connected" if check_connection(db) else "disconnected"
    }

# ------------------------------
# Auth endpoints
# ------------------------------

@app.post("/api/auth/register")
def register(payload: UserCreate, db: Session = Depends(get_db)):
    """
    Crée un compte et renvoie le profil avec un jeton
    """
    user = crud.create_user(db, payload, auth_service.hash_password(payload.password))
    logger.info(f"Nouvel utilisateur inscrit: {user.id}")
    return JSONResponse(status_code=201, content=profile_response(user))

@app.post("/api/auth/login")
def login(payload: UserLogin, db: Session = Depends(get_db)):
    """
    Vérifie les identifiants et renvoie un nouveau jeton
    """
    user = crud.get_user_by_email(db, payload.email)
    if not user or not auth_service.verify_password(payload.password, user.password):
        logger.warning("Tentative de connexion refusée")
        raise UnauthorizedError("Invalid email or password")
    return profile_response(user)

@app.get("/api/auth/profile")
def get_profile(current_user=Depends(get_current_user)):
    return profile_response(current_user, with_token=False)

@app.put("/api/auth/profile")
def update_profile(
    payload: UserUpdate,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Met à jour uniquement les champs envoyés, puis réémet un jeton
    """
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    user = crud.update_user(db, current_user, fields)
    return profile_response(user)

# ------------------------------
# Transaction endpoints
# ------------------------------

@app.get("/api/transactions")
def get_transactions(db: Session = Depends(get_db)):
    """
    Récupère toutes les transactions, triées par date décroissante
    """
    transactions = crud.get_all_transactions(db)
    return JSONResponse({
        "success": True,
        "count": len(transactions),
        "data": [serialize(Transaction, t) for t in transactions]
    })

@app.post("/api/transactions")
def add_transaction(transaction: TransactionCreate, db: Session = Depends(get_db)):
    """
    Crée une transaction (montant négatif = dépense)
    """
    transaction_db = crud.create_transaction(db, transaction)
    return JSONResponse(status_code=201, content={
        "success": True,
        "data": serialize(Transaction, transaction_db)
    })

@app.get("/api/transactions/balance")
def get_balance(db: Session = Depends(get_db)):
    transactions = crud.get_all_transactions(db)
    return JSONResponse({
        "success": True,
        "data": analysis_service.balance(transactions)
    })

@app.get("/api/transactions/analytics")
def get_analytics(
    period: str = Query("month", description="week, month ou year"),
    db: Session = Depends(get_db),
):
    """
    Analyse des dépenses par catégorie et par mois sur la période demandée
    """
    start = analysis_service.period_start(period)
    transactions = crud.get_transactions_between(db, start)
    return JSONResponse({
        "success": True,
        "data": analysis_service.analyze_spending(transactions, period)
    })

@app.post("/api/transactions/report")
def generate_report(request: ReportRequest, db: Session = Depends(get_db)):
    """
    Rapport sur une période, en JSON ou en pièce jointe CSV
    """
    start, end = analysis_service.parse_report_range(request.start_date, request.end_date)
    transactions = crud.get_transactions_between(db, start, end)

    if request.format == "csv":
        return Response(
            content=analysis_service.report_csv(transactions),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=expense-report.csv"}
        )

    report = analysis_service.build_report(transactions, request.start_date, request.end_date)
    report["transactions"] = [serialize(Transaction, t) for t in transactions]
    return JSONResponse({"success": True, "data": report})

@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    """
    Supprime une transaction spécifique
    """
    if not crud.delete_transaction(db, transaction_id):
        raise NotFoundError("Transaction not found")
    return JSONResponse({"success": True, "data": {}})

# ------------------------------
# Budget endpoints
# ------------------------------

def current_budgets_with_spent(db: Session, now: datetime = None):
    """Budgets du mois courant avec leurs dépenses recalculées"""
    now = now or datetime.now()
    month, year = budget_service.current_period(now)
    start, end = budget_service.month_range(now)
    budgets = crud.get_budgets_for_month(db, month, year)
    transactions = crud.get_transactions_between(db, start, end, end_inclusive=False)
    return budgets, transactions

def budget_with_spent(budget, spent: float):
    data = serialize(Budget, budget)
    data["spent"] = spent
    return data

@app.get("/api/budgets")
def get_budgets(db: Session = Depends(get_db)):
    """
    Budgets du mois courant; 'spent' est recalculé à chaque lecture
    """
    budgets, transactions = current_budgets_with_spent(db)
    return JSONResponse({
        "success": True,
        "data": [
            budget_with_spent(budget, spent)
            for budget, spent in budget_service.with_spent(budgets, transactions)
        ]
    })

@app.post("/api/budgets")
def create_budget(budget: BudgetCreate, db: Session = Depends(get_db)):
    """
    Crée un budget pour une catégorie sur le mois courant
    """
    month, year = budget_service.current_period()
    db_budget = crud.create_budget(db, budget.category, budget.amount, month, year)
    return JSONResponse(status_code=201, content={
        "success": True,
        "data": serialize(Budget, db_budget)
    })

@app.get("/api/budgets/alerts")
def get_budget_alerts(db: Session = Depends(get_db)):
    """
    Alertes pour les budgets consommés à 90% ou plus
    """
    budgets, transactions = current_budgets_with_spent(db)
    return JSONResponse({
        "success": True,
        "data": budget_service.alerts(budgets, transactions)
    })

@app.put("/api/budgets/{budget_id}")
def update_budget(budget_id: int, budget_update: BudgetUpdate, db: Session = Depends(get_db)):
    updated_budget = crud.update_budget(db, budget_id, budget_update.amount)
    if not updated_budget:
        raise NotFoundError("Budget not found")
    return JSONResponse({
        "success": True,
        "data": serialize(Budget, updated_budget)
    })

@app.delete("/api/budgets/{budget_id}")
def delete_budget(budget_id: int, db: Session = Depends(get_db)):
    if not crud.delete_budget(db, budget_id):
        raise NotFoundError("Budget not found")
    return JSONResponse({
        "success": True,
        "message": "Budget deleted successfully"
    })

# ------------------------------
# Goal endpoints
# ------------------------------

@app.get("/api/goals")
def get_goals(current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    goals = crud.get_goals_for_user(db, current_user.id)
    return JSONResponse({
        "success": True,
        "data": [serialize(Goal, g) for g in goals]
    })

@app.post("/api/goals")
def create_goal(goal: GoalCreate, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    db_goal = crud.create_goal(db, current_user.id, goal)
    return JSONResponse(status_code=201, content={
        "success": True,
        "data": serialize(Goal, db_goal)
    })

@app.put("/api/goals/{goal_id}")
def update_goal(
    goal_id: int,
    goal_update: GoalUpdate,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Mise à jour partielle d'un objectif; les valeurs vides ou nulles sont ignorées
    """
    goal = crud.get_goal(db, goal_id, current_user.id)
    if not goal:
        raise NotFoundError("Goal not found")

    goal_service.merge_update(goal, goal_update.model_dump(exclude_unset=True))
    updated_goal = crud.save_goal(db, goal)
    return JSONResponse({
        "success": True,
        "data": serialize(Goal, updated_goal)
    })

@app.delete("/api/goals/{goal_id}")
def delete_goal(goal_id: int, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    if not crud.delete_goal(db, goal_id, current_user.id):
        raise NotFoundError("Goal not found")
    return JSONResponse({
        "success": True,
        "message": "Goal deleted successfully"
    })

@app.post("/api/goals/{goal_id}/add")
def add_to_goal(
    goal_id: int,
    contribution: GoalContribution,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Ajoute une contribution à un objectif (plafonnée à la cible)
    """
    goal = crud.add_to_goal(db, goal_id, current_user.id, contribution.amount)
    if not goal:
        raise NotFoundError("Goal not found")
    return JSONResponse({
        "success": True,
        "data": serialize(Goal, goal)
    })

# ------------------------------
# Dashboard
# ------------------------------

@app.get("/api/dashboard")
def get_dashboard(current_user=Depends(get_optional_user), db: Session = Depends(get_db)):
    """
    Vue agrégée du tableau de bord. Chaque section est chargée indépendamment:
    une section en échec reste vide et est signalée dans 'warnings'.
    """
    dashboard = {
        "transactions": [],
        "balance": None,
        "budgets": [],
        "alerts": [],
        "goals": []
    }
    warnings = []

    def load_budgets():
        budgets, transactions = current_budgets_with_spent(db)
        dashboard["budgets"] = [
            budget_with_spent(budget, spent)
            for budget, spent in budget_service.with_spent(budgets, transactions)
        ]
        dashboard["alerts"] = budget_service.alerts(budgets, transactions)

    def load_transactions():
        transactions = crud.get_all_transactions(db)
        dashboard["transactions"] = [serialize(Transaction, t) for t in transactions[:10]]
        dashboard["balance"] = analysis_service.balance(transactions)

    def load_goals():
        if current_user is not None:
            dashboard["goals"] = [serialize(Goal, g) for g in crud.get_goals_for_user(db, current_user.id)]

    for section, loader in (("transactions", load_transactions), ("budgets", load_budgets), ("goals", load_goals)):
        try:
            loader()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Section '{section}' du tableau de bord indisponible: {str(e)[:150]}")
            warnings.append(f"Could not load {section}")

    response = {"success": True, "data": dashboard}
    if warnings:
        response["warnings"] = warnings
    return JSONResponse(response)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 5000)))
