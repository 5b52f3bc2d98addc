# apps/registry/management/commands/seed_registry.py
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from common.permissions import ADMINISTRATOR_GROUP

User = get_user_model()


SEED_DATA = {
    'professionals': [
        {"id": "PRO-101", "name": "Dr. Sarah Smith", "degree": "MBBS, MD", "category": "Hospital",
         "out_type": None, "commission_enabled": True, "commission_rate": Decimal("10")},
        {"id": "PRO-102", "name": "Dr. James Wilson", "degree": "MBBS, FCPS", "category": "Out",
         "out_type": "Doctor", "commission_enabled": True, "commission_rate": Decimal("20")},
        {"id": "PRO-103", "name": "Metro Pharmacy", "degree": "B.Pharm", "category": "Out",
         "out_type": "Pharmacist", "commission_enabled": True, "commission_rate": Decimal("5")},
        {"id": "PRO-104", "name": "John Referral Agent", "degree": "Diploma", "category": "Out",
         "out_type": "Field Refer", "commission_enabled": True, "commission_rate": Decimal("15")},
    ],
    'categories': [
        {"id": "CAT1", "name": "OPD"},
        {"id": "CAT2", "name": "Pathology"},
        {"id": "CAT3", "name": "Imaging"},
        {"id": "CAT4", "name": "Pharmacy"},
        {"id": "CAT5", "name": "Emergency"},
    ],
    'services': [
        {"id": "S1", "category": "OPD", "name": "General Consultation",
         "price": Decimal("500"), "commission_rate": Decimal("20")},
        {"id": "S2", "category": "OPD", "name": "Follow-up Consultation",
         "price": Decimal("300"), "commission_rate": Decimal("20")},
        {"id": "S3", "category": "Pathology", "name": "Complete Blood Count (CBC)",
         "price": Decimal("450"), "commission_rate": Decimal("15")},
        {"id": "S4", "category": "Pathology", "name": "Thyroid Profile",
         "price": Decimal("1200"), "commission_rate": Decimal("15")},
        {"id": "S5", "category": "Pathology", "name": "Blood Sugar (F)",
         "price": Decimal("100"), "commission_rate": Decimal("15")},
    ],
    'users': [
        {"id": "U1", "name": "System Administrator", "username": "admin", "role": "SUPER_ADMIN",
         "email": "", "status": "active"},
    ],
    'rooms': [
        {"id": "RM1", "number": "101", "type": "General", "price_per_day": Decimal("800"),
         "floor": "1st Floor", "status": "Available"},
        {"id": "RM2", "number": "102", "type": "General", "price_per_day": Decimal("800"),
         "floor": "1st Floor", "status": "Available"},
        {"id": "RM3", "number": "201", "type": "AC Cabin", "price_per_day": Decimal("2500"),
         "floor": "2nd Floor", "status": "Available"},
        {"id": "RM4", "number": "ICU-1", "type": "ICU", "price_per_day": Decimal("5000"),
         "floor": "Ground Floor", "status": "Available"},
    ],
}


class Command(BaseCommand):
    help = "Seed the registry with the starter catalog, professionals, rooms and admin user (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument(
            '--admin-password',
            help='Also create the Django sign-in account "admin" in the Administrator group with this password',
        )

    def handle(self, *args, **options):
        from apps.storage.workspace import get_workspace

        workspace = get_workspace()
        self.stdout.write("Starting registry seeding…")

        # Only empty collections are seeded so operator data is never touched
        for entity_type, records in SEED_DATA.items():
            repo = workspace.repo(entity_type)
            if len(repo):
                self.stdout.write(f"  {entity_type}: {len(repo)} records present, skipped")
                continue
            repo.put_many([dict(r) for r in records])
            self.stdout.write(f"  {entity_type}: seeded {len(records)}")
        workspace.shutdown(wait=True)

        admin_group, _ = Group.objects.get_or_create(name=ADMINISTRATOR_GROUP)

        password = options.get('admin_password')
        if password:
            user, created = User.objects.get_or_create(username='admin', defaults={'is_active': True})
            # Set password only when newly created (don't overwrite existing)
            if created:
                user.set_password(password)
                user.save(update_fields=['password'])
            user.groups.add(admin_group)
            self.stdout.write(f"  admin account {'created' if created else 'already present'}")

        self.stdout.write(self.style.SUCCESS("✓ Registry seeding complete (idempotent)."))
