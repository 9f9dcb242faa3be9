from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime
import logging

from database.models import UserModel, TransactionModel, BudgetModel, GoalModel
from models.transaction import TransactionCreate
from models.user import UserCreate
from models.goal import GoalCreate
from services.exceptions import ConflictError

logger = logging.getLogger(__name__)

# User CRUD functions
def get_user_by_id(db: Session, user_id: int):
    return db.query(UserModel).filter(UserModel.id == user_id).first()

def get_user_by_email(db: Session, email: str):
    return db.query(UserModel).filter(UserModel.email == email.lower()).first()

def create_user(db: Session, user: UserCreate, password_hash: str):
    """Crée un utilisateur; l'email doit être unique"""
    if get_user_by_email(db, user.email):
        raise ConflictError("User already exists")

    db_user = UserModel(
        name=user.name,
        email=user.email,
        password=password_hash,
        monthly_income=user.monthly_income or 0,
        currency=user.currency or "USD"
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User already exists")
    db.refresh(db_user)
    return db_user

def update_user(db: Session, user: UserModel, fields: dict):
    """Met à jour les champs fournis du profil"""
    new_email = fields.get("email")
    if new_email and new_email != user.email:
        other = get_user_by_email(db, new_email)
        if other and other.id != user.id:
            raise ConflictError("Email already in use")

    for field, value in fields.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already in use")
    db.refresh(user)
    return user

# Transaction CRUD functions
def create_transaction(db: Session, transaction: TransactionCreate):
    """Crée une nouvelle transaction"""
    db_transaction = TransactionModel(
        text=transaction.text,
        amount=transaction.amount,
        category=transaction.category,
        date=transaction.date or datetime.now()
    )
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)
    return db_transaction

def get_all_transactions(db: Session):
    """Récupère toutes les transactions, les plus récentes d'abord"""
    return db.query(TransactionModel).order_by(TransactionModel.date.desc(), TransactionModel.id.desc()).all()

def get_transactions_between(db: Session, start: datetime, end: datetime = None,
                             end_inclusive: bool = True):
    """Récupère les transactions datées à partir de start (et jusqu'à end)"""
    query = db.query(TransactionModel).filter(TransactionModel.date >= start)
    if end is not None:
        if end_inclusive:
            query = query.filter(TransactionModel.date <= end)
        else:
            query = query.filter(TransactionModel.date < end)
    return query.order_by(TransactionModel.date.desc(), TransactionModel.id.desc()).all()

def get_transaction_by_id(db: Session, transaction_id: int):
    """Récupère une transaction par son ID"""
    return db.query(TransactionModel).filter(TransactionModel.id == transaction_id).first()

def delete_transaction(db: Session, transaction_id: int):
    """Supprime une transaction"""
    transaction = get_transaction_by_id(db, transaction_id)
    if not transaction:
        return False
    db.delete(transaction)
    db.commit()
    return True

# Budget CRUD functions
def create_budget(db: Session, category: str, amount: float, month: str, year: int):
    """Crée un budget; un seul par catégorie et par mois"""
    if get_budget(db, category, month, year):
        raise ConflictError("Budget for this category already exists this month")

    db_budget = BudgetModel(
        category=category,
        amount=amount,
        month=month,
        year=year
    )
    db.add(db_budget)
    try:
        db.commit()
    except IntegrityError:
        # création concurrente: la contrainte unique tranche
        db.rollback()
        logger.warning(f"Budget en double refusé par la base: {category} {month} {year}")
        raise ConflictError("Budget for this category already exists this month")
    db.refresh(db_budget)
    return db_budget

def get_budget(db: Session, category: str, month: str, year: int):
    """Récupère un budget spécifique"""
    return db.query(BudgetModel).filter(
        BudgetModel.category == category,
        BudgetModel.month == month,
        BudgetModel.year == year
    ).first()

def get_budget_by_id(db: Session, budget_id: int):
    return db.query(BudgetModel).filter(BudgetModel.id == budget_id).first()

def get_budgets_for_month(db: Session, month: str, year: int):
    """Récupère les budgets d'un mois donné"""
    return db.query(BudgetModel).filter(
        BudgetModel.month == month,
        BudgetModel.year == year
    ).order_by(BudgetModel.id).all()

def update_budget(db: Session, budget_id: int, amount: float):
    """Met à jour le montant d'un budget (catégorie et période sont figées)"""
    budget = get_budget_by_id(db, budget_id)
    if not budget:
        return None
    budget.amount = amount
    db.commit()
    db.refresh(budget)
    return budget

def delete_budget(db: Session, budget_id: int):
    """Supprime un budget"""
    budget = get_budget_by_id(db, budget_id)
    if not budget:
        return False
    db.delete(budget)
    db.commit()
    return True

# Goal CRUD functions
def get_goals_for_user(db: Session, user_id: int):
    """Récupère les objectifs d'un utilisateur, les plus récents d'abord"""
    return db.query(GoalModel).filter(GoalModel.user_id == user_id).order_by(
        GoalModel.created_at.desc(), GoalModel.id.desc()
    ).all()

def get_goal(db: Session, goal_id: int, user_id: int):
    return db.query(GoalModel).filter(
        GoalModel.id == goal_id,
        GoalModel.user_id == user_id
    ).first()

def create_goal(db: Session, user_id: int, goal: GoalCreate):
    """Crée un objectif d'épargne"""
    db_goal = GoalModel(
        user_id=user_id,
        title=goal.title,
        target_amount=goal.target_amount,
        current_amount=0,
        deadline=goal.deadline,
        category=goal.category,
        color=goal.color
    )
    db.add(db_goal)
    db.commit()
    db.refresh(db_goal)
    return db_goal

def save_goal(db: Session, goal: GoalModel):
    db.commit()
    db.refresh(goal)
    return goal

def delete_goal(db: Session, goal_id: int, user_id: int):
    """Supprime un objectif appartenant à l'utilisateur"""
    goal = get_goal(db, goal_id, user_id)
    if not goal:
        return False
    db.delete(goal)
    db.commit()
    return True

def add_to_goal(db: Session, goal_id: int, user_id: int, amount: float):
    """
    Ajoute une contribution en une seule requête UPDATE: le montant est plafonné
    à la cible et l'objectif marqué terminé lorsqu'elle est atteinte
    """
    new_amount = GoalModel.current_amount + amount
    reached = new_amount >= GoalModel.target_amount
    stmt = (
        update(GoalModel)
        .where(GoalModel.id == goal_id, GoalModel.user_id == user_id)
        # is_completed en premier: MySQL évalue le SET de gauche à droite
        .ordered_values(
            (GoalModel.is_completed, case((reached, True), else_=GoalModel.is_completed)),
            (GoalModel.current_amount, case((reached, GoalModel.target_amount), else_=new_amount)),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        db.rollback()
        return None
    db.commit()
    goal = get_goal(db, goal_id, user_id)
    db.refresh(goal)
    return goal
