"""SQLite gateway for the clinical records backend."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import StorageError

logger = logging.getLogger(__name__)

ADMIN_ROLE_DESCRIPTION = "Administrador"

SCHEMA: Tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS rol (
        idRol INTEGER PRIMARY KEY AUTOINCREMENT,
        descripcion_rol TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS persona (
        idPersona INTEGER PRIMARY KEY AUTOINCREMENT,
        carnet_identidad TEXT,
        nombre TEXT NOT NULL,
        apellido1 TEXT NOT NULL,
        apellido2 TEXT,
        fecha_nacimiento TEXT,
        escuela TEXT,
        telefono TEXT,
        email TEXT,
        departamento TEXT,
        municipio TEXT,
        colonia TEXT,
        direccion TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS usuario (
        idUsuario INTEGER PRIMARY KEY AUTOINCREMENT,
        nombre_usuario TEXT NOT NULL UNIQUE,
        contrasena TEXT NOT NULL,
        rol_usuario INTEGER NOT NULL REFERENCES rol(idRol)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS paciente (
        NHC INTEGER PRIMARY KEY REFERENCES persona(idPersona),
        tutor_info TEXT,
        grado TEXT,
        otra_info TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS medicamento (
        idMedicamento INTEGER PRIMARY KEY AUTOINCREMENT,
        nombre_medicamento TEXT NOT NULL UNIQUE,
        principio_activo TEXT,
        descripcion_medicamento TEXT,
        fecha_caducidad TEXT,
        forma_dispensacion TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS inventario_medicamentos (
        idInventario INTEGER PRIMARY KEY AUTOINCREMENT,
        idMedicamento INTEGER NOT NULL REFERENCES medicamento(idMedicamento),
        cantidad_actual INTEGER NOT NULL,
        fecha_registro TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS agenda (
        idAgenda INTEGER PRIMARY KEY AUTOINCREMENT,
        descripcion TEXT NOT NULL,
        horario TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cita (
        idCita INTEGER PRIMARY KEY AUTOINCREMENT,
        fecha TEXT,
        hora TEXT,
        NHC_paciente INTEGER NOT NULL REFERENCES paciente(NHC),
        doctor_id INTEGER NOT NULL REFERENCES usuario(idUsuario),
        agenda_id INTEGER NOT NULL REFERENCES agenda(idAgenda),
        informacion_cita TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS episodio (
        idEpisodio INTEGER PRIMARY KEY AUTOINCREMENT,
        NHC_paciente INTEGER NOT NULL REFERENCES paciente(NHC),
        Medico INTEGER NOT NULL REFERENCES usuario(idUsuario),
        fecha_episodio TEXT,
        tipo_asistencia TEXT,
        motivo_consulta TEXT,
        anamnesis TEXT,
        diagnostico TEXT,
        tratamiento TEXT,
        peso REAL,
        pa TEXT,
        spo2 REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS hce (
        NHC_paciente INTEGER PRIMARY KEY REFERENCES paciente(NHC),
        sexo TEXT,
        grupo_sanguineo TEXT,
        alergias TEXT,
        antecedentes_clinicos TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS datos_antropometricos (
        idDatoAntropometrico INTEGER PRIMARY KEY AUTOINCREMENT,
        NHC_paciente INTEGER NOT NULL REFERENCES paciente(NHC),
        fecha_registro TEXT,
        peso REAL,
        altura REAL,
        IMC REAL,
        circunferencia_cintura REAL,
        circunferencia_cadera REAL,
        circunferencia_cabeza REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS receta (
        idReceta INTEGER PRIMARY KEY AUTOINCREMENT,
        nhc_paciente INTEGER NOT NULL REFERENCES paciente(NHC),
        id_medicamento INTEGER NOT NULL REFERENCES medicamento(idMedicamento),
        id_medico INTEGER NOT NULL REFERENCES usuario(idUsuario),
        fecha_receta TEXT,
        recomendaciones TEXT
    )
    """,
)


class WriteResult(NamedTuple):
    lastrowid: Optional[int]
    rowcount: int


def insert_statement(table: str, values: Dict[str, Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Build a parameterized INSERT; column names must come from model fields."""
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
    return sql, tuple(values.values())


def update_statement(
    table: str, key: str, values: Dict[str, Any], ident: Any
) -> Tuple[str, Tuple[Any, ...]]:
    """Build a parameterized UPDATE that only touches the supplied columns."""
    assignments = ", ".join(f"{column} = ?" for column in values)
    sql = f"UPDATE {table} SET {assignments} WHERE {key} = ?"
    return sql, (*values.values(), ident)


class Database:
    """Connection-bounded handle over a SQLite file.

    At most ``pool_size`` connections are open at once; callers beyond that
    block until a slot frees up. Plain reads and writes use one short-lived
    connection per statement, :meth:`transaction` keeps one connection for
    the whole block and commits or rolls back before releasing it.
    """

    def __init__(self, path: Path, pool_size: int = 10, timeout: float = 5.0):
        self.path = Path(path)
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(max(1, pool_size))

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        with self._slots:
            with closing(self._connect()) as conn:
                yield conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self.connection() as conn:
            try:
                yield conn
            except Exception:
                logger.warning("Rolling back transaction on %s", self.path.name)
                conn.rollback()
                raise
            conn.commit()

    def run(self, conn: sqlite3.Connection, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return conn.execute(sql, tuple(params))
        except (sqlite3.Error, OverflowError) as exc:
            logger.error("Statement failed: %s (%s)", " ".join(sql.split()), exc)
            raise StorageError(detalles=str(exc)) from exc

    def fetch_all(
        self, sql: str, params: Sequence[Any] = (), conn: Optional[sqlite3.Connection] = None
    ) -> List[Dict[str, Any]]:
        if conn is not None:
            return [dict(row) for row in self.run(conn, sql, params).fetchall()]
        with self.connection() as own:
            return [dict(row) for row in self.run(own, sql, params).fetchall()]

    def fetch_one(
        self, sql: str, params: Sequence[Any] = (), conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(sql, params, conn=conn)
        return rows[0] if rows else None

    def execute(
        self, sql: str, params: Sequence[Any] = (), conn: Optional[sqlite3.Connection] = None
    ) -> WriteResult:
        if conn is not None:
            cursor = self.run(conn, sql, params)
            return WriteResult(cursor.lastrowid, cursor.rowcount)
        with self.connection() as own:
            cursor = self.run(own, sql, params)
            own.commit()
            return WriteResult(cursor.lastrowid, cursor.rowcount)

    def init_schema(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            self.run(conn, "PRAGMA journal_mode = WAL")
            for statement in SCHEMA:
                self.run(conn, statement)
            conn.commit()
        logger.info("Schema ready at %s", self.path)


def seed_default_admin_user(db: Database, password_hash: str, username: str = "admin") -> None:
    """Ensure the administrator role and account exist."""
    with db.transaction() as conn:
        existing = db.fetch_one(
            "SELECT idUsuario FROM usuario WHERE nombre_usuario = ?", (username,), conn=conn
        )
        if existing:
            return
        role = db.fetch_one(
            "SELECT idRol FROM rol WHERE descripcion_rol = ?", (ADMIN_ROLE_DESCRIPTION,), conn=conn
        )
        if role:
            role_id = role["idRol"]
        else:
            role_id = db.execute(
                "INSERT INTO rol (descripcion_rol) VALUES (?)", (ADMIN_ROLE_DESCRIPTION,), conn=conn
            ).lastrowid
        db.execute(
            "INSERT INTO usuario (nombre_usuario, contrasena, rol_usuario) VALUES (?, ?, ?)",
            (username, password_hash, role_id),
            conn=conn,
        )
    logger.info("Seeded default administrator '%s'", username)
