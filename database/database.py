from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker
import logging
import time

from config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# SQLite exige check_same_thread=False avec le pool de threads de FastAPI
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def wait_for_database(bind=None, retries: int = None, backoff: float = None):
    """Tente de se connecter à la base avec un backoff exponentiel"""
    bind = bind or engine
    retries = retries or settings.db_connect_retries
    delay = settings.db_connect_backoff if backoff is None else backoff

    for attempt in range(1, retries + 1):
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info(f"Base de données connectée ({attempt}/{retries})")
            return
        except OperationalError as e:
            if attempt == retries:
                logger.error(f"Connexion à la base impossible après {retries} tentatives: {e}")
                raise
            logger.warning(f"Connexion à la base échouée ({attempt}/{retries}), nouvel essai dans {delay:.1f}s")
            time.sleep(delay)
            delay *= 2

def init_db(bind=None):
    """Initialise la base de données"""
    from database.models import UserModel, TransactionModel, BudgetModel, GoalModel
    bind = bind or engine
    wait_for_database(bind)
    Base.metadata.create_all(bind=bind)

def check_connection(db) -> bool:
    """Vérifie que la session peut joindre la base"""
    try:
        db.execute(text("SELECT 1"))
        return True
    except OperationalError:
        logger.warning("Sonde de santé: base de données injoignable")
        return False

def get_db():
    """Dependency pour obtenir une session de base de données"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
