from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='GiftCard',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(db_index=True, help_text='Unique gift card code', max_length=20)),
                ('initial_balance', models.DecimalField(decimal_places=2, help_text='Balance when the gift card was issued', max_digits=10)),
                ('balance', models.DecimalField(decimal_places=2, help_text='Current remaining balance on the gift card', max_digits=10)),
                ('issued_at', models.DateTimeField(help_text='Date when the gift card was issued')),
                ('expires_at', models.DateTimeField(blank=True, help_text='Optional expiry date for the gift card', null=True)),
                ('last_used_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gift_cards', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Gift Card',
                'verbose_name_plural': 'Gift Cards',
                'ordering': ['-issued_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'code'], name='payments_gi_tenant__2cd925_idx'),
                    models.Index(fields=['expires_at'], name='payments_gi_expires_a3515f_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'code'), name='unique_gift_card_code_per_tenant'),
                    models.CheckConstraint(
                        condition=models.Q(('balance__gte', 0), ('balance__lte', models.F('initial_balance'))),
                        name='gift_card_balance_within_bounds',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('method', models.CharField(choices=[('CASH', 'Cash'), ('CARD', 'Card'), ('GIFT_CARD', 'Gift Card')], max_length=20)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SUCCEEDED', 'Succeeded'), ('FAILED', 'Failed')], default='PENDING', max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Amount applied to the order', max_digits=10)),
                ('tendered_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Cash handed over by the customer, including change', max_digits=10, null=True)),
                ('currency', models.CharField(max_length=3)),
                ('provider', models.CharField(blank=True, max_length=50, null=True)),
                ('idempotency_key', models.CharField(blank=True, help_text='Client-generated key that makes card charges safe to retry', max_length=255, null=True)),
                ('payment_intent_id', models.CharField(blank=True, max_length=255, null=True)),
                ('transaction_id', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='orders.order')),
                ('order_items', models.ManyToManyField(blank=True, help_text='Items covered by this payment in a split settlement', related_name='payments', to='orders.orderitem')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['order', 'status'], name='payments_pa_order_i_a76289_idx'),
                    models.Index(fields=['tenant', 'method'], name='payments_pa_tenant__f308e8_idx'),
                    models.Index(fields=['payment_intent_id'], name='payments_pa_payment_7ccbf1_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('idempotency_key__isnull', False)),
                        fields=('tenant', 'idempotency_key'),
                        name='unique_payment_idempotency_key_per_tenant',
                    ),
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='payment_amount_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GiftCardPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount_used', models.DecimalField(decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('gift_card', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='payments.giftcard')),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gift_card_uses', to='payments.payment')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('payment', 'gift_card'), name='unique_gift_card_payment'),
                    models.CheckConstraint(condition=models.Q(('amount_used__gt', 0)), name='gift_card_payment_amount_positive'),
                ],
            },
        ),
    ]
