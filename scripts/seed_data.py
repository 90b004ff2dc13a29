#!/usr/bin/env python3
"""
Seed data script for testing the expense tracker application.
Creates sample, already classified expenses for one user.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
import uuid
import random

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from shared.dynamodb import DynamoDBClient
from shared.session import DEFAULT_APP_ID, SessionContext


SAMPLE_EXPENSES = {
    'Comida': [('Cena en parrilla', 'Restaurante'), ('Compra semanal', 'Supermercado'), ('Café', 'Cafetería')],
    'Transporte': [('Carga de nafta', 'Gasolina'), ('Viaje en taxi', 'Taxi'), ('Recarga SUBE', 'Transporte público')],
    'Entretenimiento': [('Entradas de cine', 'Cine'), ('Suscripción de streaming', 'Streaming')],
    'Vivienda': [('Alquiler del mes', 'Alquiler'), ('Expensas', 'Expensas')],
    'Salud': [('Farmacia', 'Medicamentos'), ('Consulta médica', 'Médico')],
    'Educación': [('Libros de la facultad', 'Libros'), ('Curso online', 'Curso')],
    'Servicios': [('Factura de luz', 'Electricidad'), ('Internet', 'Internet')],
    'Otros': [('Regalo de cumpleaños', 'Regalo')]
}


def seed_expenses(table: DynamoDBClient, session: SessionContext, num_expenses=30):
    """Seed sample expenses."""
    print(f"Creating {num_expenses} sample expenses...")

    expenses = []
    for i in range(num_expenses):
        category = random.choice(list(SAMPLE_EXPENSES))
        description, classification = random.choice(SAMPLE_EXPENSES[category])
        created_at = (
            datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 60 * 24 * 28))
        ).isoformat()

        expenses.append({
            'owner_id': session.owner_id,
            'expense_id': str(uuid.uuid4()),
            'amount': round(random.uniform(500.0, 50000.0), 2),
            'description': description,
            'category': category,
            'classification': classification,
            'created_at': created_at,
            'updated_at': created_at
        })

    table.batch_write(expenses)

    print(f"Created {len(expenses)} expenses")
    return expenses


def main():
    """Main function."""
    print("=" * 50)
    print("Expense Tracker - Seed Data Script")
    print("=" * 50)

    table_name = os.environ.get('EXPENSES_TABLE') or input("Enter expenses table name: ").strip()
    if not table_name:
        print("Error: Expenses table is required")
        sys.exit(1)

    app_id = input(f"Enter app ID (default: {DEFAULT_APP_ID}): ").strip() or DEFAULT_APP_ID

    user_id = input("Enter user ID to seed data for: ").strip()
    if not user_id:
        print("Error: User ID is required")
        sys.exit(1)

    num_expenses = input("Enter number of expenses to create (default: 30): ").strip()
    num_expenses = int(num_expenses) if num_expenses else 30

    print("\nConnecting to DynamoDB...")
    table = DynamoDBClient(table_name)
    session = SessionContext(user_id=user_id, app_id=app_id)

    print("\nSeeding expenses...")
    expenses = seed_expenses(table, session, num_expenses)

    print("\n" + "=" * 50)
    print("Data seeding complete!")
    print("=" * 50)
    print(f"\nCreated {len(expenses)} expenses for {session.owner_id}")


if __name__ == '__main__':
    main()
