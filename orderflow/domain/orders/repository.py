"""Order repository - Database operations for the lifecycle scheduler"""

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Employee, EmployeeAssignment, Order, OrderNote


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def find_orders(db: Session, *criteria) -> list[Order]:
        """
        Find orders matching all criteria.

        Criteria are SQLAlchemy boolean expressions; use or_() for alternatives.
        Customer and assignment recipients are loaded eagerly.
        """
        return (
            db.query(Order)
            .options(
                joinedload(Order.customer),
                selectinload(Order.employee_assignments)
                .joinedload(EmployeeAssignment.employee)
                .joinedload(Employee.user),
            )
            .filter(*criteria)
            .order_by(Order.id)
            .all()
        )

    @staticmethod
    def update_order(db: Session, order: Order, **fields) -> Order:
        """Stage field updates on an order; the caller owns the commit"""
        for key, value in fields.items():
            if not hasattr(order, key):
                raise AttributeError(f"Order has no field '{key}'")
            setattr(order, key, value)
        db.flush()
        return order

    @staticmethod
    def create_order_note(db: Session, **note_data) -> OrderNote:
        """Stage an audit note; the caller owns the commit"""
        note = OrderNote(**note_data)
        db.add(note)
        db.flush()
        return note
