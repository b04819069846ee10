import csv

from django.core.management.base import BaseCommand, CommandError

from apps.corecode.utils import current_year
from apps.finance.aggregation import dues_by_class, refresh_fee_summaries
from apps.finance.models import StudentFeeSummary
from apps.students.models import Student


class Command(BaseCommand):
    help = 'Report collected and due fees per student for a year'

    def add_arguments(self, parser):
        parser.add_argument(
            '--format',
            choices=['console', 'csv'],
            default='console',
            help='Output format'
        )
        parser.add_argument(
            '--class',
            dest='class_id',
            help='Filter by class ID'
        )
        parser.add_argument(
            '--year',
            type=int,
            default=None,
            help='Fee year (defaults to the current year)'
        )
        parser.add_argument(
            '--refresh-summaries',
            action='store_true',
            help='Also store the computed totals as cached fee summaries'
        )

    def handle(self, *args, **options):
        year = options['year'] or current_year()
        if year < 2000:
            raise CommandError(f"Invalid year: {year}")

        students = Student.objects.all()
        if options['class_id']:
            students = students.filter(current_class_id=options['class_id'])

        grouped = dues_by_class(students, year)

        if options['refresh_summaries']:
            refreshed = refresh_fee_summaries(students, year)
            self.stderr.write(f"🔄 Refreshed {refreshed} cached summaries")

        if options['format'] == 'csv':
            self.output_csv(grouped)
        else:
            self.output_console(grouped, year)

    def output_console(self, grouped, year):
        self.stdout.write(self.style.SUCCESS('=' * 80))
        self.stdout.write(self.style.SUCCESS(f'FEE DUE REPORT {year}'))
        self.stdout.write(self.style.SUCCESS('=' * 80))

        grand_paid = grand_due = 0
        for class_name in sorted(grouped):
            rows = grouped[class_name]
            class_paid = sum(t.total_paid for _, t in rows)
            class_due = max(0, sum(t.total_due for _, t in rows))
            grand_paid += class_paid
            grand_due += class_due

            self.stdout.write(f"\n🏫 {class_name or 'No class'} ({len(rows)} students)")
            self.stdout.write(f"{'Admission No':<15} {'Roll':<6} {'Name':<30} {'Paid':>12} {'Due':>12}")
            self.stdout.write('-' * 80)
            for student, totals in rows:
                due = max(0, totals.total_due)
                due_text = self.style.WARNING(f"{due:>12}") if due else f"{due:>12}"
                self.stdout.write(
                    f"{student.admission_no:<15} {student.roll:<6} {student.name:<30} "
                    f"{totals.total_paid:>12} {due_text}"
                )
            self.stdout.write(f"   Class total: paid {class_paid}, due {class_due}")

        self.stdout.write(f"\n📊 Summary:")
        self.stdout.write(f"   Total Paid: {self.style.SUCCESS(str(grand_paid))}")
        self.stdout.write(f"   Total Due: {self.style.WARNING(str(grand_due))}")
        self.stdout.write(f"   Cached summaries for {year}: {StudentFeeSummary.objects.filter(year=year).count()}")

    def output_csv(self, grouped):
        writer = csv.writer(self.stdout)
        writer.writerow(['Class', 'Admission No', 'Roll', 'Name', 'Total Paid', 'Total Due'])

        for class_name in sorted(grouped):
            for student, totals in grouped[class_name]:
                writer.writerow([
                    class_name,
                    student.admission_no,
                    student.roll,
                    student.name,
                    totals.total_paid,
                    max(0, totals.total_due),
                ])
