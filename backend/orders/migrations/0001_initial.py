from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('discounts', '0001_initial'),
        ('products', '0001_initial'),
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BusinessPricingPolicy',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(default='Default', max_length=100)),
                ('unit_price_includes_tax', models.BooleanField(default=False)),
                ('money_rounding_mode', models.CharField(default='HALF_EVEN', help_text='Informational; settlement always rounds half-to-even.', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pricing_policies', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Business Pricing Policy',
                'verbose_name_plural': 'Business Pricing Policies',
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('OPEN', 'Open'), ('CLOSED', 'Closed'), ('CANCELLED', 'Cancelled')], default='OPEN', max_length=20)),
                ('refund_status', models.CharField(choices=[('NONE', 'Not Refunded'), ('PARTIALLY_REFUNDED', 'Partially Refunded'), ('REFUNDED', 'Refunded')], default='NONE', max_length=20)),
                ('currency', models.CharField(default='EUR', max_length=3)),
                ('note', models.TextField(blank=True)),
                ('opened_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('discounts', models.ManyToManyField(blank=True, related_name='orders', to='discounts.discount')),
                ('pricing_policy', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='orders.businesspricingpolicy')),
                ('service_charge_policies', models.ManyToManyField(blank=True, related_name='orders', to='discounts.servicechargepolicy')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-opened_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='orders_orde_tenant__291115_idx'),
                    models.Index(fields=['tenant', 'opened_at'], name='orders_orde_tenant__40e117_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to='products.product')),
                ('reservation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to='products.reservation')),
                ('service', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to='products.service')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='order_items', to='tenant.tenant')),
                ('variation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to='products.productvariation')),
            ],
            options={
                'verbose_name': 'Order Item',
                'verbose_name_plural': 'Order Items',
                'ordering': ['created_at', 'id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('product__isnull', False), ('reservation__isnull', True), ('service__isnull', True)),
                            models.Q(('product__isnull', True), ('reservation__isnull', True), ('service__isnull', False)),
                            models.Q(('product__isnull', True), ('reservation__isnull', False), ('service__isnull', True)),
                            _connector='OR',
                        ),
                        name='order_item_exactly_one_sellable',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('variation__isnull', True), ('product__isnull', False), _connector='OR'),
                        name='order_item_variation_requires_product',
                    ),
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='order_item_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderTip',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('source', models.CharField(blank=True, default='', max_length=50)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('order', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='tip', to='orders.order')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gte', 0)), name='order_tip_amount_non_negative'),
                ],
            },
        ),
    ]
