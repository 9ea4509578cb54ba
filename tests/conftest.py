"""
Pytest configuration and shared fixtures for the order lifecycle scheduler.
Every test gets a fresh in-memory SQLite database.
"""

import itertools
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.database import Base
from orderflow.models import (
    Customer,
    Employee,
    EmployeeAssignment,
    Order,
    OrderStatus,
    User,
    UserRole,
)

NOW = datetime(2024, 1, 2, 0, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def admin(db):
    user = User(email="admin@example.com", full_name="Ops Admin", role=UserRole.ADMIN.value)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def customer(db):
    customer = Customer(company_name="Acme Facilities", contact_name="Dana Reyes")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def make_employee(db):
    counter = itertools.count(1)

    def _make_employee() -> Employee:
        n = next(counter)
        user = User(email=f"worker{n}@example.com", full_name=f"Worker {n}", role=UserRole.EMPLOYEE.value)
        employee = Employee(user=user, first_name="Worker", last_name=str(n))
        db.add(employee)
        db.commit()
        return employee

    return _make_employee


@pytest.fixture
def make_order(db, customer, make_employee):
    counter = itertools.count(1)

    def _make_order(
        status: OrderStatus = OrderStatus.ACTIVE,
        scheduled_date: datetime = None,
        start_time: datetime = None,
        is_archived: bool = False,
        assignments: int = 0,
    ) -> Order:
        n = next(counter)
        order = Order(
            order_number=f"ORD-{n:04d}",
            status=status.value,
            scheduled_date=scheduled_date,
            start_time=start_time,
            is_archived=is_archived,
            customer=customer,
        )
        for _ in range(assignments):
            order.employee_assignments.append(EmployeeAssignment(employee=make_employee()))
        db.add(order)
        db.commit()
        return order

    return _make_order
