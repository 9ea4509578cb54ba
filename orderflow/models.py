from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TEAM_LEADER = "TEAM_LEADER"
    EMPLOYEE = "EMPLOYEE"
    CUSTOMER = "CUSTOMER"


class OrderStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    ACTIVE = "ACTIVE"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class NoteCategory(str, Enum):
    GENERAL_UPDATE = "GENERAL_UPDATE"
    ISSUE_REPORTED = "ISSUE_REPORTED"
    CUSTOMER_COMMUNICATION = "CUSTOMER_COMMUNICATION"
    STATUS_CHANGE = "STATUS_CHANGE"


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), default=UserRole.EMPLOYEE.value, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    employee = relationship("Employee", back_populates="user", uselist=False)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)

    orders = relationship("Order", back_populates="customer")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    user = relationship("User", back_populates="employee")
    assignments = relationship("EmployeeAssignment", back_populates="employee")


class Order(Base):
    """Customer order worked by assigned employees"""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)

    # Lifecycle: DRAFT → OPEN → ACTIVE → IN_PROGRESS → IN_REVIEW → COMPLETED
    # CANCELLED and EXPIRED are terminal side exits
    status = Column(String(50), default=OrderStatus.DRAFT.value, nullable=False, index=True)

    scheduled_date = Column(DateTime, nullable=True, index=True)
    start_time = Column(DateTime, nullable=True)  # Set when work actually begins
    is_archived = Column(Boolean, default=False, nullable=False)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="orders")
    employee_assignments = relationship("EmployeeAssignment", back_populates="order")
    notes = relationship("OrderNote", back_populates="order", order_by="OrderNote.id")


class EmployeeAssignment(Base):
    __tablename__ = "employee_assignments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    assigned_at = Column(DateTime, server_default=func.now())

    order = relationship("Order", back_populates="employee_assignments")
    employee = relationship("Employee", back_populates="assignments")


class OrderNote(Base):
    """Append-only audit entry on an order"""

    __tablename__ = "order_notes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), default=NoteCategory.GENERAL_UPDATE.value, nullable=False)
    is_internal = Column(Boolean, default=False, nullable=False)  # Hidden from customers
    triggers_status = Column(String(50), nullable=True)  # Status this note documents
    created_at = Column(DateTime, server_default=func.now())

    order = relationship("Order", back_populates="notes")
    author = relationship("User")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    template_key = Column(String(100), nullable=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    category = Column(String(50), nullable=True, index=True)
    data = Column(JSON, nullable=True)
    # TYPE:order_id:anchor, used to avoid re-sending the same reminder
    reminder_key = Column(String(255), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    recipients = relationship("NotificationRecipient", back_populates="notification")


class NotificationRecipient(Base):
    __tablename__ = "notification_recipients"

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(Integer, ForeignKey("notifications.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    channels = Column(JSON, default=list, nullable=False)
    status = Column(String(50), default=NotificationStatus.PENDING.value, nullable=False)
    read_at = Column(DateTime, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    notification = relationship("Notification", back_populates="recipients")
