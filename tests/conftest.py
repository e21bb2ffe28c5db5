from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from models import (
    Base, Organization, User, Project, MemberRole,
    organization_members, project_members
)
from models.database import create_db_engine, get_db
from utils.auth import create_access_token


@pytest.fixture()
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}", echo=False)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def seed(db) -> SimpleNamespace:
    """
    两个组织：
      org_a: alice、bob、carol；项目 p1（alice、bob），p2（alice、carol）
      org_b: dave；项目 p3（dave）
    root 是不在任何项目中的超级管理员
    """
    org_a = Organization(id="O_1", name="Acme", slug="acme")
    org_b = Organization(id="O_2", name="Globex", slug="globex")
    alice = User(id="U_1", username="alice", email="alice@acme.test", name="Alice")
    bob = User(id="U_2", username="bob", email="bob@acme.test", name="Bob")
    carol = User(id="U_3", username="carol", email="carol@acme.test", name="Carol")
    dave = User(id="U_4", username="dave", email="dave@globex.test", name="Dave")
    root = User(id="U_9", username="root", email="root@acme.test", name="Root")
    db.add_all([org_a, org_b, alice, bob, carol, dave, root])
    db.flush()

    p1 = Project(id="P_1", org_id=org_a.id, name="Apollo", creator_id=alice.id)
    p2 = Project(id="P_2", org_id=org_a.id, name="Borealis", creator_id=alice.id)
    p3 = Project(id="P_3", org_id=org_b.id, name="Cosmos", creator_id=dave.id)
    db.add_all([p1, p2, p3])
    db.flush()

    db.execute(organization_members.insert(), [
        {"org_id": org_a.id, "user_id": alice.id},
        {"org_id": org_a.id, "user_id": bob.id},
        {"org_id": org_a.id, "user_id": carol.id},
        {"org_id": org_b.id, "user_id": dave.id},
    ])
    db.execute(project_members.insert(), [
        {"org_id": org_a.id, "project_id": p1.id, "user_id": alice.id, "role": MemberRole.ADMIN},
        {"org_id": org_a.id, "project_id": p1.id, "user_id": bob.id, "role": MemberRole.EDITOR},
        {"org_id": org_a.id, "project_id": p2.id, "user_id": alice.id, "role": MemberRole.ADMIN},
        {"org_id": org_a.id, "project_id": p2.id, "user_id": carol.id, "role": MemberRole.EDITOR},
        {"org_id": org_b.id, "project_id": p3.id, "user_id": dave.id, "role": MemberRole.ADMIN},
    ])
    db.commit()

    return SimpleNamespace(
        org_a=org_a.id, org_b=org_b.id,
        alice=alice.id, bob=bob.id, carol=carol.id, dave=dave.id, root=root.id,
        p1=p1.id, p2=p2.id, p3=p3.id,
    )


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth():
    def _headers(user_id: str, org_id: str, is_super_admin: bool = False) -> dict:
        token = create_access_token(user_id, org_id, is_super_admin)
        return {"Authorization": f"Bearer {token}"}
    return _headers
