"""
Management command printing an order status and revenue report.
"""
from django.core.management.base import BaseCommand, CommandError

from shop.domain.errors import ValidationError
from shop.domain.order import OrderStatus
from shop.services import OrderService


class Command(BaseCommand):
    help = 'Print order counts per status, pending orders and delivered revenue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--status',
            default=None,
            help='List the orders in this status instead of the pending ones',
        )

    def handle(self, *args, **options):
        service = OrderService()
        try:
            status = OrderStatus.parse(options['status']) if options['status'] else OrderStatus.PENDING
        except ValidationError as e:
            raise CommandError(e.message)

        self.stdout.write('Orders by status:')
        for order_status, count in service.count_by_status().items():
            self.stdout.write(f'  {order_status.value:<11} {count}')

        orders = service.list_orders(status=status)
        self.stdout.write(f'{status.value} orders: {len(orders)}')
        for order in orders:
            self.stdout.write(
                f'  #{order.id} customer={order.customer_id} '
                f'items={len(order.items)} total={order.total_amount}'
            )

        revenue = service.calculate_total_revenue()
        self.stdout.write(self.style.SUCCESS(f'Delivered revenue: {revenue}'))
