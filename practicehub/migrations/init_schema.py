"""Database schema initialization.

Contains every CREATE TABLE / ALTER TABLE / CREATE INDEX statement for
PracticeHub. Every business table carries tenant_id.

Called by database.ensure_schema() on module import.
"""


def create_schema(conn, cursor):
    """Create all tables and indexes.

    Args:
        conn: Database connection (caller commits)
        cursor: Database cursor from get_cursor(conn)
    """
    _create_platform_tables(cursor)
    _create_setup_tables(cursor)
    _create_client_tables(cursor)
    _create_task_tables(cursor)
    _create_workflow_tables(cursor)
    _create_finance_tables(cursor)
    _create_indexes(cursor)
    _apply_column_migrations(cursor)


def _create_platform_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tenants (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tenant_settings (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            setting_key TEXT NOT NULL,
            setting_value TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, setting_key)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS roles (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            description TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            email TEXT NOT NULL,
            display_name TEXT NOT NULL,
            password_hash TEXT,
            role_id INTEGER REFERENCES roles(id) ON DELETE SET NULL,
            is_admin BOOLEAN DEFAULT FALSE,
            is_super_admin BOOLEAN DEFAULT FALSE,
            is_active BOOLEAN DEFAULT TRUE,
            last_login TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, email)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS role_permissions (
            id SERIAL PRIMARY KEY,
            role_id INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            resource TEXT NOT NULL,
            action TEXT NOT NULL,
            UNIQUE (role_id, resource, action)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS user_permissions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            resource TEXT NOT NULL,
            action TEXT NOT NULL,
            granted BOOLEAN NOT NULL DEFAULT TRUE,
            UNIQUE (user_id, resource, action)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS user_events (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER REFERENCES tenants(id) ON DELETE CASCADE,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            user_email TEXT,
            event_type TEXT NOT NULL,
            event_description TEXT,
            entity_type TEXT,
            entity_id INTEGER,
            ip_address TEXT,
            details JSONB DEFAULT '{}',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS notifications (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER REFERENCES tenants(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type TEXT DEFAULT 'info',
            title TEXT NOT NULL,
            message TEXT,
            link TEXT,
            entity_type TEXT,
            entity_id INTEGER,
            is_read BOOLEAN DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def _create_setup_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS countries (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            code TEXT,
            UNIQUE (tenant_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS states (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            country_id INTEGER NOT NULL REFERENCES countries(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            code TEXT,
            UNIQUE (tenant_id, country_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS entity_types (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            country_id INTEGER REFERENCES countries(id) ON DELETE SET NULL,
            name TEXT NOT NULL,
            UNIQUE (tenant_id, country_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tax_jurisdictions (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            country_id INTEGER REFERENCES countries(id) ON DELETE SET NULL,
            name TEXT NOT NULL,
            description TEXT,
            UNIQUE (tenant_id, country_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS service_types (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            country_id INTEGER REFERENCES countries(id) ON DELETE SET NULL,
            name TEXT NOT NULL,
            rate NUMERIC(15,2),
            currency TEXT,
            billing_basis TEXT,
            UNIQUE (tenant_id, country_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS task_categories (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            UNIQUE (tenant_id, name)
        )
    ''')


def _create_client_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS clients (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            display_name TEXT NOT NULL,
            email TEXT,
            mobile TEXT,
            status TEXT DEFAULT 'Active',
            country_id INTEGER REFERENCES countries(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, display_name),
            UNIQUE (tenant_id, email),
            UNIQUE (tenant_id, mobile)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS chart_of_accounts (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            account_code TEXT NOT NULL,
            account_name TEXT NOT NULL,
            account_type TEXT NOT NULL,
            client_id INTEGER REFERENCES clients(id) ON DELETE SET NULL,
            current_balance NUMERIC(15,2) DEFAULT 0,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, account_code)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS entities (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            client_id INTEGER NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            country_id INTEGER REFERENCES countries(id) ON DELETE SET NULL,
            state_id INTEGER REFERENCES states(id) ON DELETE SET NULL,
            entity_type_id INTEGER REFERENCES entity_types(id) ON DELETE SET NULL,
            tax_jurisdiction_id INTEGER REFERENCES tax_jurisdictions(id) ON DELETE SET NULL,
            business_tax_id TEXT,
            is_vat_registered BOOLEAN DEFAULT FALSE,
            vat_id TEXT,
            address TEXT,
            file_access_link TEXT,
            revenue_account_id INTEGER REFERENCES chart_of_accounts(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, client_id, name)
        )
    ''')


def _create_task_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS task_statuses (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            rank INTEGER NOT NULL,
            description TEXT,
            UNIQUE (tenant_id, rank),
            UNIQUE (tenant_id, name)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tasks (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            is_admin BOOLEAN DEFAULT FALSE,
            task_type TEXT DEFAULT 'Regular',
            client_id INTEGER REFERENCES clients(id) ON DELETE CASCADE,
            entity_id INTEGER REFERENCES entities(id) ON DELETE CASCADE,
            service_type_id INTEGER REFERENCES service_types(id) ON DELETE SET NULL,
            task_category_id INTEGER REFERENCES task_categories(id) ON DELETE SET NULL,
            assignee_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            due_date DATE,
            status_id INTEGER REFERENCES task_statuses(id) ON DELETE SET NULL,
            task_details TEXT,
            next_to_do TEXT,
            is_recurring BOOLEAN DEFAULT FALSE,
            compliance_frequency TEXT,
            compliance_duration TEXT,
            compliance_year TEXT,
            compliance_start_date DATE,
            compliance_end_date DATE,
            compliance_deadline DATE,
            currency TEXT,
            service_rate NUMERIC(15,2),
            invoice_id INTEGER,
            is_auto_generated BOOLEAN DEFAULT FALSE,
            needs_approval BOOLEAN DEFAULT FALSE,
            parent_task_id INTEGER REFERENCES tasks(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS task_status_history (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            from_status_id INTEGER REFERENCES task_statuses(id) ON DELETE SET NULL,
            to_status_id INTEGER REFERENCES task_statuses(id) ON DELETE SET NULL,
            changed_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            changed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def _create_workflow_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS workflows (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            description TEXT,
            status TEXT DEFAULT 'draft',
            is_active BOOLEAN DEFAULT TRUE,
            created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS workflow_triggers (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            workflow_id INTEGER NOT NULL REFERENCES workflows(id) ON DELETE CASCADE,
            trigger_type TEXT NOT NULL DEFAULT 'event',
            trigger_module TEXT,
            trigger_event TEXT,
            trigger_conditions JSONB,
            trigger_config JSONB DEFAULT '{}',
            webhook_token TEXT UNIQUE,
            last_fired_at TIMESTAMP,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS workflow_actions (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            workflow_id INTEGER NOT NULL REFERENCES workflows(id) ON DELETE CASCADE,
            action_type TEXT NOT NULL,
            action_config JSONB DEFAULT '{}',
            sequence_order INTEGER NOT NULL DEFAULT 1,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS workflow_execution_logs (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            workflow_id INTEGER NOT NULL REFERENCES workflows(id) ON DELETE CASCADE,
            trigger_id INTEGER REFERENCES workflow_triggers(id) ON DELETE SET NULL,
            trigger_event_data JSONB,
            execution_status TEXT NOT NULL,
            action_logs JSONB DEFAULT '[]',
            error_message TEXT,
            execution_time_ms INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def _create_finance_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS invoices (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            invoice_number TEXT NOT NULL,
            client_id INTEGER NOT NULL REFERENCES clients(id) ON DELETE RESTRICT,
            entity_id INTEGER REFERENCES entities(id) ON DELETE SET NULL,
            task_id INTEGER REFERENCES tasks(id) ON DELETE SET NULL,
            status TEXT NOT NULL DEFAULT 'draft',
            issue_date DATE NOT NULL,
            due_date DATE NOT NULL,
            currency_code TEXT DEFAULT 'USD',
            subtotal NUMERIC(15,2) DEFAULT 0,
            tax_amount NUMERIC(15,2) DEFAULT 0,
            discount_amount NUMERIC(15,2) DEFAULT 0,
            total_amount NUMERIC(15,2) DEFAULT 0,
            amount_paid NUMERIC(15,2) DEFAULT 0,
            amount_due NUMERIC(15,2) DEFAULT 0,
            notes TEXT,
            terms_and_conditions TEXT,
            is_deleted BOOLEAN DEFAULT FALSE,
            created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, invoice_number)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS invoice_line_items (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
            task_id INTEGER REFERENCES tasks(id) ON DELETE SET NULL,
            description TEXT NOT NULL,
            quantity NUMERIC(15,4) DEFAULT 1,
            unit_price NUMERIC(15,2) DEFAULT 0,
            tax_rate NUMERIC(7,4) DEFAULT 0,
            discount_rate NUMERIC(7,4) DEFAULT 0,
            tax_amount NUMERIC(15,2) DEFAULT 0,
            discount_amount NUMERIC(15,2) DEFAULT 0,
            line_total NUMERIC(15,2) DEFAULT 0,
            sort_order INTEGER DEFAULT 0
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS payments (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
            payment_date DATE NOT NULL,
            amount NUMERIC(15,2) NOT NULL,
            payment_method TEXT DEFAULT 'bank_transfer',
            reference_number TEXT,
            notes TEXT,
            created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS journal_entries (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            entry_date DATE NOT NULL,
            reference TEXT,
            entry_type TEXT NOT NULL,
            description TEXT,
            is_posted BOOLEAN DEFAULT TRUE,
            source_document TEXT,
            source_document_id INTEGER,
            created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS journal_entry_lines (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            journal_entry_id INTEGER NOT NULL REFERENCES journal_entries(id) ON DELETE CASCADE,
            account_id INTEGER NOT NULL REFERENCES chart_of_accounts(id) ON DELETE RESTRICT,
            description TEXT,
            debit_amount NUMERIC(15,2) DEFAULT 0,
            credit_amount NUMERIC(15,2) DEFAULT 0,
            line_order INTEGER DEFAULT 1
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS payment_gateway_settings (
            id SERIAL PRIMARY KEY,
            tenant_id INTEGER NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            gateway_type TEXT NOT NULL,
            is_enabled BOOLEAN DEFAULT FALSE,
            config_data TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (tenant_id, gateway_type)
        )
    ''')


def _create_indexes(cursor):
    statements = [
        'CREATE INDEX IF NOT EXISTS idx_users_tenant ON users(tenant_id)',
        'CREATE INDEX IF NOT EXISTS idx_notifications_user_unread ON notifications(user_id, is_read)',
        'CREATE INDEX IF NOT EXISTS idx_user_events_tenant ON user_events(tenant_id, created_at DESC)',
        'CREATE INDEX IF NOT EXISTS idx_entities_client ON entities(tenant_id, client_id)',
        'CREATE INDEX IF NOT EXISTS idx_tasks_tenant_status ON tasks(tenant_id, status_id)',
        'CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(tenant_id, assignee_id)',
        'CREATE INDEX IF NOT EXISTS idx_tasks_recurring ON tasks(tenant_id) WHERE is_recurring = TRUE',
        'CREATE INDEX IF NOT EXISTS idx_tasks_pending_approval ON tasks(tenant_id) WHERE needs_approval = TRUE',
        'CREATE INDEX IF NOT EXISTS idx_wf_triggers_lookup ON workflow_triggers(tenant_id, trigger_module, trigger_event) WHERE is_active = TRUE',
        'CREATE INDEX IF NOT EXISTS idx_wf_actions_workflow ON workflow_actions(workflow_id, sequence_order)',
        'CREATE INDEX IF NOT EXISTS idx_wf_logs_workflow ON workflow_execution_logs(workflow_id, created_at DESC)',
        'CREATE INDEX IF NOT EXISTS idx_invoices_tenant_status ON invoices(tenant_id, status) WHERE is_deleted = FALSE',
        'CREATE INDEX IF NOT EXISTS idx_payments_invoice ON payments(invoice_id)',
        'CREATE INDEX IF NOT EXISTS idx_journal_lines_entry ON journal_entry_lines(journal_entry_id)',
    ]
    for sql in statements:
        cursor.execute(sql)


def _apply_column_migrations(cursor):
    # tasks.invoice_id was added after invoices existed
    cursor.execute('''
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM information_schema.table_constraints
                WHERE table_name = 'tasks' AND constraint_name = 'tasks_invoice_id_fkey'
            ) THEN
                ALTER TABLE tasks ADD CONSTRAINT tasks_invoice_id_fkey
                    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE SET NULL;
            END IF;
        END $$;
    ''')
